# inserir_caixas.py - insere o catálogo padrão de caixas na loja do primeiro admin
import logging

import click
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from erros import NaoEncontrado
from esquemas import CaixaEntrada
from exportacao import formatar_erros_validacao
from modelos import Caixa, Usuario, db

logger = logging.getLogger(__name__)

# codigo, comprimento, largura, altura (mm), onda, papel, logo, custo unitário, ideal para
CAIXAS = [
    ("121", 110, 110, 240, "DUPLA", "TT", False, 1.35, ""),
    ("121", 150, 150, 255, "SIMPLES", "KRAFT", False, 1.85, ""),
    ("98", 150, 150, 260, "SIMPLES", "REC", False, 1.37, ""),
    ("132", 180, 180, 106, "SIMPLES", "REC", False, 1.06, "QUEIJEIRAS"),
    ("160", 200, 200, 96, "Dupla", "TT", False, 1.66, "Pratos Sobremesa"),
    ("124", 220, 200, 120, "SIMPLES", "REC", False, 0.95, ""),
    ("87", 220, 150, 120, "SIMPLES", "REC", False, 0.99, ""),
    ("61", 250, 250, 150, "DUPLA", "TT", False, 2.70, ""),
    ("96", 250, 250, 200, "SIMPLES", "REC", False, 2.16, ""),
    ("103", 260, 260, 170, "DUPLA", "TT", False, 3.26, "caçarola medias / faqueiros wolff"),
    ("151 TABULEIRO", 260, 260, 0, "Simples", "", False, 0.28, ""),
    ("136", 270, 150, 80, "Dupla", "TT", True, 0.94, ""),
    ("106", 280, 280, 340, "SIMPLES", "KRAFT", False, 4.77, ""),
    ("141", 285, 274, 83, "Dupla", "TT", True, 2.95, ""),
    ("152 TABULEIRO", 300, 180, 0, "Dupla", "TT", False, 0.32, ""),
    ("142", 312, 268, 180, "Dupla", "TT", True, 3.48, ""),
    ("150", 316, 183, 170, "Dupla", "TT", True, 2.40, ""),
    ("58", 320, 320, 120, "SIMPLES", "REC", False, 2.60, ""),
    ("99", 340, 200, 90, "DUPLA", "TT", False, 2.34, ""),
    ("52", 350, 350, 180, "DUPLA", "TT", False, 4.85, ""),
    ("119", 360, 130, 70, "SIMPLES", "REC", False, 1.05, ""),
    ("120", 360, 300, 70, "SIMPLES", "REC", False, 2.45, ""),
    ("140", 388, 306, 143, "Dupla", "TT", True, 4.10, ""),
    ("149", 400, 240, 100, "Dupla", "TT", True, 2.95, ""),
    ("137", 402, 402, 103, "Dupla", "TT", True, 3.85, ""),
    ("", 410, 240, 70, "Dupla", "TT", True, 0.0, "Frigideira 22"),
    ("133", 410, 270, 300, "DUPLA", "TT", False, 5.20, "Jogos 20 Oxford"),
    ("80", 450, 300, 120, "DUPLA", "TT", False, 4.15, ""),
    ("134", 450, 280, 90, "DUPLA", "TT", False, 3.49, ""),
    ("93", 460, 300, 130, "SIMPLES", "REC", False, 3.09, ""),
    ("113", 482, 266, 177, "SIMPLES", "KRAFT", False, 4.72, ""),
    ("129", 493, 324, 225, "DUPLA", "TT", False, 4.96, "WOK 28"),
    ("122", 498, 335, 310, "SIMPLES", "KRAFT", False, 7.20, "TITANIUM 4"),
    ("", 500, 270, 110, "Dupla", "TT", True, 0.0, "Frigideira 26"),
    ("95", 500, 280, 190, "SIMPLES", "KRAFT", False, 5.05, ""),
    ("54", 500, 320, 80, "SIMPLES", "REC", False, 3.10, ""),
    ("92", 500, 330, 90, "SIMPLES", "REC", False, 2.29, ""),
    ("112", 500, 403, 105, "SIMPLES", "REC", False, 4.30, ""),
    ("139", 500, 326, 130, "Dupla", "TT", True, 4.95, ""),
    ("129 TABULEIRO", 500, 300, 0, "DUPLA", "TT", False, 0.90, "CARMELAS"),
    ("153", 504, 334, 480, "Dupla", "TT", True, 8.90, ""),
    ("147", 506, 334, 352, "Dupla", "TT", True, 7.46, ""),
    ("102", 520, 340, 100, "SIMPLES", "KRAFT", False, 5.15, ""),
    ("107", 530, 350, 190, "SIMPLES", "KRAFT", False, 6.65, "CARMELA 5"),
    ("130 TABULEIRO", 540, 340, 0, "DUPLA", "TT", False, 1.10, "TITANIUM"),
    ("156", 555, 352, 638, "Dupla", "TT", True, 11.48, "16 Peças"),
    ("128", 555, 350, 170, "DUPLA", "TT", True, 6.29, "TITANIUM 5"),
    ("138", 558, 354, 297, "Dupla", "TT", True, 7.65, "TITANIUM 6"),
    ("148", 560, 434, 350, "Dupla", "TT", True, 9.90, "Tita 12"),
    ("131", 560, 352, 350, "SIMPLES", "KRAFT", False, 8.51, "Tita 5 + 3 NOVO"),
    ("94", 570, 360, 190, "SIMPLES", "KRAFT", False, 6.93, ""),
]


def loja_do_primeiro_admin():
    admin = (Usuario.query.filter(Usuario.role.in_(('admin', 'super_admin')))
             .order_by(Usuario.id.asc()).first())
    if not admin:
        raise NaoEncontrado("Usuário admin não encontrado")
    logger.info(f"👤 Usando loja do usuário {admin.username} (loja {admin.loja_id})")
    return admin.loja_id


def inserir_caixas(loja_id=None, caixas=None):
    """Insere cada caixa em sua própria transação; falhas são registradas e puladas."""
    if loja_id is None:
        loja_id = loja_do_primeiro_admin()
    caixas = CAIXAS if caixas is None else caixas
    logger.info(f"📦 Inserindo {len(caixas)} caixas...")

    inseridas = 0
    falhas = []
    for codigo, comprimento, largura, altura, onda, papel, logo, custo, ideal in caixas:
        rotulo = codigo or 'SEM CÓDIGO'
        try:
            entrada = CaixaEntrada.model_validate({
                'codigo': codigo,
                'comprimento': comprimento,
                'largura': largura,
                'altura': altura,
                'tipo_onda': onda,
                'papel': papel or None,
                'tem_logo': logo,
                'custo_unitario': custo,
                'ideal_para': ideal or None,
            })
            db.session.add(Caixa(loja_id=loja_id, **entrada.model_dump()))
            db.session.commit()
            inseridas += 1
            logger.info(f"✅ Inserida caixa código: {rotulo}")
        except ValidationError as e:
            db.session.rollback()
            motivo = "; ".join(formatar_erros_validacao(e))
            falhas.append({'codigo': rotulo, 'erro': motivo})
            logger.error(f"❌ Erro ao inserir caixa {rotulo}: {motivo}")
        except SQLAlchemyError as e:
            db.session.rollback()
            falhas.append({'codigo': rotulo, 'erro': str(e)})
            logger.error(f"❌ Erro ao inserir caixa {rotulo}: {e}")

    logger.info(f"🎉 Inserção concluída: {inseridas} caixas, {len(falhas)} falhas")
    return {'inseridas': inseridas, 'falhas': falhas}


@click.command()
@click.option('--loja-id', type=int, default=None, help='Loja que recebe as caixas')
def main(loja_id):
    from app import app
    with app.app_context():
        resultado = inserir_caixas(loja_id)
    click.echo(f"{resultado['inseridas']} caixas inseridas, {len(resultado['falhas'])} falhas.")


if __name__ == '__main__':
    main()
