import logging

from flask import Blueprint, g, jsonify, request

from erros import AcessoNegado, ErroValidacao, NaoAutenticado
from esquemas import LoginEntrada, TrocaSenhaEntrada
from modelos import Usuario, db
from seguranca import conferir_senha, gerar_hash_senha, gerar_token, login_required, registrar_auditoria

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    dados = LoginEntrada.model_validate(request.get_json(silent=True) or {})
    usuario = Usuario.query.filter(
        (Usuario.username == dados.username) | (Usuario.email == dados.username.lower())
    ).first()

    if not conferir_senha(usuario, dados.senha):
        logger.warning(f"Login recusado para '{dados.username}' ({request.remote_addr})")
        raise NaoAutenticado("Usuário ou senha incorretos")
    if not usuario.ativo:
        raise AcessoNegado("Usuário desativado")
    if usuario.loja and not usuario.loja.ativo and not usuario.is_super_admin:
        raise AcessoNegado("Loja desativada. Contate o administrador.")

    g.usuario = usuario
    registrar_auditoria('LOGIN', 'usuarios', usuario.id)
    db.session.commit()
    logger.info(f"✅ Login: {usuario.username}")
    return jsonify({'token': gerar_token(usuario), 'usuario': usuario.para_dict()})


@auth_bp.route('/me')
@login_required
def me():
    usuario = g.usuario
    dados = usuario.para_dict()
    dados['loja'] = usuario.loja.para_dict() if usuario.loja else None
    return jsonify(dados)


@auth_bp.route('/senha', methods=['POST'])
@login_required
def trocar_senha():
    dados = TrocaSenhaEntrada.model_validate(request.get_json(silent=True) or {})
    if not conferir_senha(g.usuario, dados.senha_atual):
        raise ErroValidacao("Senha atual incorreta")
    try:
        g.usuario.senha_hash = gerar_hash_senha(dados.nova_senha)
        registrar_auditoria('SENHA', 'usuarios', g.usuario.id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({'mensagem': 'Senha alterada com sucesso'})
