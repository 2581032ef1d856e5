import logging
from functools import wraps

from flask import current_app, g, has_request_context, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from erros import AcessoNegado, NaoAutenticado, NaoEncontrado
from modelos import LogAuditoria, Usuario, db

logger = logging.getLogger(__name__)

SALT_TOKEN = 'token-acesso'


# ==============================================================================
# SENHAS E TOKENS
# ==============================================================================
def gerar_hash_senha(senha):
    return generate_password_hash(senha)


def conferir_senha(usuario, senha):
    return bool(usuario and usuario.senha_hash and check_password_hash(usuario.senha_hash, senha or ''))


def _serializador():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=SALT_TOKEN)


def gerar_token(usuario):
    return _serializador().dumps({'uid': usuario.id, 'role': usuario.role})


def usuario_do_token(token):
    validade = int(current_app.config.get('TOKEN_VALIDADE_HORAS', 12)) * 3600
    try:
        dados = _serializador().loads(token, max_age=validade)
    except SignatureExpired:
        raise NaoAutenticado("Sessão expirada, faça login novamente")
    except BadSignature:
        raise NaoAutenticado("Token inválido")

    usuario = db.session.get(Usuario, dados.get('uid'))
    if not usuario or not usuario.ativo:
        raise NaoAutenticado("Usuário inativo ou inexistente")
    if usuario.loja and not usuario.loja.ativo and not usuario.is_super_admin:
        raise AcessoNegado("Loja desativada. Contate o administrador.")
    return usuario


def _token_da_requisicao():
    cabecalho = request.headers.get('Authorization', '')
    tipo, _, token = cabecalho.partition(' ')
    if tipo.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


# ==============================================================================
# DECORADORES DE SEGURANÇA
# ==============================================================================
def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _token_da_requisicao()
        if not token:
            raise NaoAutenticado()
        g.usuario = usuario_do_token(token)
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        usuario = g.get('usuario')
        if not usuario:
            raise NaoAutenticado()
        if not usuario.is_admin:
            raise AcessoNegado("Requer privilégios de Administrador")
        return f(*args, **kwargs)
    return decorated_function


def super_admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        usuario = g.get('usuario')
        if not usuario:
            raise NaoAutenticado()
        if not usuario.is_super_admin:
            raise AcessoNegado("Apenas o administrador mestre tem acesso")
        return f(*args, **kwargs)
    return decorated_function


# ==============================================================================
# ESCOPO POR LOJA E AUDITORIA
# ==============================================================================
def escopo_loja(query, modelo):
    usuario = g.usuario
    if usuario.is_super_admin:
        return query
    return query.filter(modelo.loja_id == usuario.loja_id)


def obter_da_loja(modelo, registro_id, por_loja=True):
    registro = db.session.get(modelo, registro_id)
    if not registro:
        raise NaoEncontrado()
    if por_loja and not g.usuario.is_super_admin and registro.loja_id != g.usuario.loja_id:
        raise NaoEncontrado()
    return registro


def registrar_auditoria(acao, recurso, recurso_id=None, detalhes=None):
    """Adiciona o registro na sessão atual; o commit é de quem chama."""
    usuario = g.get('usuario')
    log = LogAuditoria(
        loja_id=usuario.loja_id if usuario else None,
        usuario_id=usuario.id if usuario else None,
        acao=acao,
        recurso=recurso,
        recurso_id=recurso_id,
        ip=request.remote_addr if has_request_context() else None,
        detalhes=detalhes,
    )
    db.session.add(log)
    logger.info(f"AUDITORIA: {acao} {recurso}#{recurso_id or '-'} por {usuario.username if usuario else 'sistema'}")
    return log


NIVEIS = {
    'user': login_required,
    'admin': lambda f: login_required(admin_required(f)),
    'super_admin': lambda f: login_required(super_admin_required(f)),
}


def protecao(nivel):
    """Decorador correspondente ao nível mínimo de acesso ('user', 'admin', 'super_admin')."""
    return NIVEIS[nivel]
