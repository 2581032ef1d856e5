import logging

from flask import Blueprint, g, jsonify, request

from crud import GerenciadorCrud, aplicar_campos
from erros import AcessoNegado, NaoEncontrado
from esquemas import AvaliacaoEntrada, FerramentaEntrada, FornecedorEntrada, ParceiroEntrada
from modelos import (ALVOS_AVALIACAO, Avaliacao, ContatoFornecedor, ContatoParceiro, Ferramenta,
                     Fornecedor, Parceiro, db, recalcular_avaliacoes)
from seguranca import admin_required, login_required, registrar_auditoria

logger = logging.getLogger(__name__)

diretorio_bp = Blueprint('diretorio', __name__, url_prefix='/api')

ALVOS_URL = {
    'fornecedores': 'fornecedor',
    'parceiros': 'parceiro',
    'ferramentas': 'ferramenta',
}

# Avaliações de ferramentas entram publicadas; as demais aguardam moderação.
APROVACAO_AUTOMATICA = {'ferramenta'}


def aplicar_com_contatos(modelo_contato):
    def aplicar(registro, dados):
        dados = dict(dados)
        contatos = dados.pop('contatos', None)
        aplicar_campos(registro, dados)
        if contatos is not None:
            registro.contatos = [modelo_contato(tipo=c['tipo'], valor=c['valor'], rotulo=c.get('rotulo'))
                                 for c in contatos]
    return aplicar


def remover_avaliacoes(alvo_tipo):
    def antes_excluir(registro):
        Avaliacao.query.filter_by(alvo_tipo=alvo_tipo, alvo_id=registro.id).delete()
    return antes_excluir


# ==============================================================================
# FORNECEDORES, PARCEIROS E FERRAMENTAS
# ==============================================================================
fornecedores = GerenciadorCrud(
    Fornecedor, FornecedorEntrada, 'fornecedores',
    campos_busca=('nome_fantasia', 'razao_social', 'cnpj', 'categoria'),
    filtros=('categoria', 'verificado', 'ativo'),
    colunas_csv=['id', 'nome_fantasia', 'razao_social', 'cnpj', 'categoria', 'descricao', 'logo',
                 'observacoes', 'verificado', 'ativo', 'media_avaliacao', 'total_avaliacoes'],
    por_loja=False,
    nivel_escrita='admin',
    ordenacao_padrao='nome_fantasia',
    aplicar=aplicar_com_contatos(ContatoFornecedor),
    antes_excluir=remover_avaliacoes('fornecedor'),
).registrar(diretorio_bp, '/fornecedores')

parceiros = GerenciadorCrud(
    Parceiro, ParceiroEntrada, 'parceiros',
    campos_busca=('nome', 'email', 'especialidades', 'servicos'),
    filtros=('verificado', 'ativo'),
    colunas_csv=['id', 'nome', 'email', 'telefone', 'especialidades', 'descricao', 'servicos',
                 'endereco', 'website', 'instagram', 'linkedin', 'verificado', 'ativo',
                 'media_avaliacao', 'total_avaliacoes'],
    por_loja=False,
    nivel_escrita='admin',
    ordenacao_padrao='nome',
    aplicar=aplicar_com_contatos(ContatoParceiro),
    antes_excluir=remover_avaliacoes('parceiro'),
).registrar(diretorio_bp, '/parceiros')

ferramentas = GerenciadorCrud(
    Ferramenta, FerramentaEntrada, 'ferramentas',
    campos_busca=('nome', 'descricao', 'tipo'),
    filtros=('tipo', 'suporte_brasil', 'verificado', 'ativo'),
    colunas_csv=['id', 'nome', 'descricao', 'tipo', 'logo', 'website', 'preco', 'recursos', 'pros',
                 'contras', 'suporte_brasil', 'verificado', 'ativo', 'media_avaliacao', 'total_avaliacoes'],
    por_loja=False,
    nivel_escrita='admin',
    ordenacao_padrao='nome',
    antes_excluir=remover_avaliacoes('ferramenta'),
).registrar(diretorio_bp, '/ferramentas')


# ==============================================================================
# AVALIAÇÕES
# ==============================================================================
def _alvo(alvo_url, alvo_id):
    alvo_tipo = ALVOS_URL[alvo_url]
    alvo = db.session.get(ALVOS_AVALIACAO[alvo_tipo], alvo_id)
    if not alvo:
        raise NaoEncontrado()
    return alvo_tipo, alvo


@diretorio_bp.route('/<any(fornecedores, parceiros, ferramentas):alvo_url>/<int:alvo_id>/avaliacoes')
@login_required
def listar_avaliacoes(alvo_url, alvo_id):
    alvo_tipo, alvo = _alvo(alvo_url, alvo_id)
    query = Avaliacao.query.filter_by(alvo_tipo=alvo_tipo, alvo_id=alvo_id)
    if not g.usuario.is_admin:
        query = query.filter((Avaliacao.aprovada.is_(True)) | (Avaliacao.usuario_id == g.usuario.id))
    avaliacoes = query.order_by(Avaliacao.criado_em.desc(), Avaliacao.id.desc()).all()
    return jsonify({
        'itens': [a.para_dict() for a in avaliacoes],
        'media_avaliacao': alvo.media_avaliacao or 0,
        'total_avaliacoes': alvo.total_avaliacoes or 0,
    })


@diretorio_bp.route('/<any(fornecedores, parceiros, ferramentas):alvo_url>/<int:alvo_id>/avaliacoes',
                    methods=['POST'])
@login_required
def criar_avaliacao(alvo_url, alvo_id):
    alvo_tipo, alvo = _alvo(alvo_url, alvo_id)
    dados = AvaliacaoEntrada.model_validate(request.get_json(silent=True) or {})
    avaliacao = Avaliacao(
        alvo_tipo=alvo_tipo,
        alvo_id=alvo_id,
        usuario_id=g.usuario.id,
        nota=dados.nota,
        comentario=dados.comentario,
        aprovada=alvo_tipo in APROVACAO_AUTOMATICA,
    )
    try:
        db.session.add(avaliacao)
        db.session.flush()
        if avaliacao.aprovada:
            recalcular_avaliacoes(alvo_tipo, alvo_id)
        registrar_auditoria('CRIOU', 'avaliacoes', avaliacao.id, detalhes=f"{alvo_tipo}#{alvo_id}")
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(f"Avaliação {avaliacao.id} ({alvo_tipo}#{alvo_id}) nota {avaliacao.nota}")
    return jsonify(avaliacao.para_dict()), 201


@diretorio_bp.route('/avaliacoes/pendentes')
@login_required
@admin_required
def avaliacoes_pendentes():
    pendentes = Avaliacao.query.filter_by(aprovada=False).order_by(Avaliacao.criado_em.asc()).all()
    return jsonify({'itens': [a.para_dict() for a in pendentes], 'total': len(pendentes)})


@diretorio_bp.route('/avaliacoes/<int:avaliacao_id>/aprovar', methods=['POST'])
@login_required
@admin_required
def aprovar_avaliacao(avaliacao_id):
    avaliacao = db.session.get(Avaliacao, avaliacao_id)
    if not avaliacao:
        raise NaoEncontrado()
    try:
        avaliacao.aprovada = True
        db.session.flush()
        alvo = recalcular_avaliacoes(avaliacao.alvo_tipo, avaliacao.alvo_id)
        registrar_auditoria('APROVOU', 'avaliacoes', avaliacao.id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({
        'avaliacao': avaliacao.para_dict(),
        'media_avaliacao': alvo.media_avaliacao if alvo else 0,
        'total_avaliacoes': alvo.total_avaliacoes if alvo else 0,
    })


@diretorio_bp.route('/avaliacoes/<int:avaliacao_id>', methods=['DELETE'])
@login_required
def excluir_avaliacao(avaliacao_id):
    avaliacao = db.session.get(Avaliacao, avaliacao_id)
    if not avaliacao:
        raise NaoEncontrado()
    if not g.usuario.is_admin and avaliacao.usuario_id != g.usuario.id:
        raise AcessoNegado("Só o autor ou um administrador pode excluir a avaliação")
    alvo_tipo, alvo_id = avaliacao.alvo_tipo, avaliacao.alvo_id
    try:
        db.session.delete(avaliacao)
        db.session.flush()
        recalcular_avaliacoes(alvo_tipo, alvo_id)
        registrar_auditoria('EXCLUIU', 'avaliacoes', avaliacao_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({'mensagem': 'Avaliação excluída', 'id': avaliacao_id})
