import logging
import os
from datetime import datetime

import click
from dotenv import load_dotenv
from flask import Flask, jsonify
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from erros import ErroAplicacao
from exportacao import formatar_erros_validacao
from modelos import Loja, Usuario, db
from rotas import registrar_blueprints
from seguranca import gerar_hash_senha

load_dotenv()

# ==============================================================================
# CONFIGURAÇÃO DE LOGGING
# ==============================================================================
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

base_path = os.path.abspath(os.path.dirname(__file__))


# ==============================================================================
# CONFIGURAÇÃO DO BANCO DE DADOS PRINCIPAL
# ==============================================================================
def url_do_banco():
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql+psycopg2://", 1)
        elif database_url.startswith("postgresql://"):
            database_url = database_url.replace("postgresql://", "postgresql+psycopg2://", 1)
        return database_url
    return f"sqlite:///{os.path.join(base_path, 'database.db')}"


def carregar_config(app):
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'hub-chave-de-desenvolvimento')
    app.config['SQLALCHEMY_DATABASE_URI'] = url_do_banco()
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['JSON_AS_ASCII'] = False
    app.config['MAX_CONTENT_LENGTH'] = 5 * 1024 * 1024
    app.config['TOKEN_VALIDADE_HORAS'] = int(os.getenv('TOKEN_VALIDADE_HORAS', 12))
    app.config['FRONTEND_URL'] = os.getenv('FRONTEND_URL', 'http://localhost:5173')
    for chave in ('STRIPE_SECRET_KEY', 'STRIPE_WEBHOOK_SECRET', 'STRIPE_PRICE_BASIC',
                  'STRIPE_PRICE_PREMIUM', 'STRIPE_PRICE_MASTER'):
        app.config[chave] = os.getenv(chave)


# ==============================================================================
# TRATAMENTO DE ERROS
# ==============================================================================
def registrar_erros(app):

    @app.errorhandler(ErroAplicacao)
    def erro_aplicacao(e):
        if e.status >= 500:
            logger.error(f"❌ {e.mensagem}")
        return jsonify(e.para_dict()), e.status

    @app.errorhandler(ValidationError)
    def erro_validacao(e):
        return jsonify({'erro': 'Dados inválidos', 'detalhes': formatar_erros_validacao(e)}), 400

    @app.errorhandler(SQLAlchemyError)
    def erro_banco(e):
        db.session.rollback()
        logger.error(f"❌ Erro de banco: {e}")
        return jsonify({'erro': 'Erro ao acessar o banco de dados'}), 500

    @app.errorhandler(HTTPException)
    def erro_http(e):
        return jsonify({'erro': e.description or e.name}), e.code

    @app.errorhandler(500)
    def internal_server_error(e):
        db.session.rollback()
        return jsonify({'erro': 'Erro interno do servidor'}), 500


# ==============================================================================
# COMANDOS DE LINHA DE COMANDO
# ==============================================================================
def criar_super_admin(username, senha):
    usuario = Usuario.query.filter_by(username=username).first()
    if usuario:
        logger.info(f"Super admin '{username}' já existe")
        return usuario
    loja = Loja.query.first()
    if not loja:
        loja = Loja(nome="Loja Padrão", ativo=True)
        db.session.add(loja)
        db.session.flush()
    usuario = Usuario(username=username, senha_hash=gerar_hash_senha(senha), role='super_admin',
                      nome='Administrador', loja_id=loja.id)
    db.session.add(usuario)
    db.session.commit()
    logger.info(f"✅ Super admin '{username}' criado na loja {loja.nome}")
    return usuario


def registrar_comandos(app):

    @app.cli.command('init-db')
    def init_db():
        """Cria as tabelas e o super admin definido no ambiente."""
        db.create_all()
        username = os.getenv('SUPER_ADMIN_USERNAME')
        senha = os.getenv('SUPER_ADMIN_PASSWORD')
        if username and senha:
            criar_super_admin(username, senha)
        else:
            logger.warning("SUPER_ADMIN_USERNAME/SUPER_ADMIN_PASSWORD não definidos; nenhum usuário criado")
        click.echo("Banco inicializado.")

    @app.cli.command('inserir-caixas')
    @click.option('--loja-id', type=int, default=None, help='Loja que recebe as caixas')
    def inserir_caixas_cmd(loja_id):
        """Insere o catálogo padrão de caixas."""
        from inserir_caixas import inserir_caixas
        resultado = inserir_caixas(loja_id)
        click.echo(f"{resultado['inseridas']} caixas inseridas, {len(resultado['falhas'])} falhas.")


# ==============================================================================
# FÁBRICA DA APLICAÇÃO
# ==============================================================================
def criar_app(config_extra=None):
    app = Flask(__name__)
    carregar_config(app)
    if config_extra:
        app.config.update(config_extra)
    app.json.ensure_ascii = False

    db.init_app(app)
    registrar_blueprints(app)
    registrar_erros(app)
    registrar_comandos(app)

    @app.route('/health')
    def health_check():
        return jsonify({'status': 'ok', 'timestamp': datetime.now().isoformat()}), 200

    with app.app_context():
        db.create_all()

    uri = app.config['SQLALCHEMY_DATABASE_URI']
    logger.info(f"Conexão de banco: {'PostgreSQL' if uri.startswith('postgresql') else 'SQLite'}")
    return app


app = criar_app()

if __name__ == '__main__':
    port = int(os.getenv('PORT', 10000))
    app.run(host='0.0.0.0', port=port, debug=os.getenv('FLASK_DEBUG') == '1')
