from rotas.admin import admin_bp
from rotas.agentes import agentes_bp
from rotas.auth import auth_bp
from rotas.catalogo import catalogo_bp
from rotas.cobranca import cobranca_bp
from rotas.conteudo import conteudo_bp
from rotas.diretorio import diretorio_bp

BLUEPRINTS = [auth_bp, catalogo_bp, diretorio_bp, conteudo_bp, cobranca_bp, admin_bp, agentes_bp]


def registrar_blueprints(app):
    for bp in BLUEPRINTS:
        app.register_blueprint(bp)
