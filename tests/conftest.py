import os

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ.setdefault('SECRET_KEY', 'chave-de-teste')
for _chave in ('ALERT_EMAIL_PASSWORD', 'ALERT_EMAIL_TO'):
    os.environ.pop(_chave, None)

import pytest  # noqa: E402

from app import criar_app  # noqa: E402
from modelos import Loja, Usuario, db  # noqa: E402
from seguranca import gerar_hash_senha, gerar_token  # noqa: E402

SENHA = 'Senha@123'

CONFIG_TESTE = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'SECRET_KEY': 'chave-de-teste',
    'STRIPE_SECRET_KEY': 'sk_test_123',
    'STRIPE_WEBHOOK_SECRET': 'whsec_test',
    'STRIPE_PRICE_BASIC': 'price_basic',
    'STRIPE_PRICE_PREMIUM': 'price_premium',
    'STRIPE_PRICE_MASTER': 'price_master',
    'FRONTEND_URL': 'http://front.test',
}


@pytest.fixture
def app():
    app = criar_app(CONFIG_TESTE)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def criar_usuario(app, username, role='user', loja_id=None, email=None, creditos=0):
    with app.app_context():
        usuario = Usuario(username=username, senha_hash=gerar_hash_senha(SENHA), role=role,
                          loja_id=loja_id, email=email, nome=username.title(),
                          saldo_creditos=creditos)
        db.session.add(usuario)
        db.session.commit()
        return usuario.id


def cabecalho(app, usuario_id):
    with app.app_context():
        token = gerar_token(db.session.get(Usuario, usuario_id))
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def lojas(app):
    with app.app_context():
        loja_a = Loja(nome='Loja A')
        loja_b = Loja(nome='Loja B')
        db.session.add_all([loja_a, loja_b])
        db.session.commit()
        return loja_a.id, loja_b.id


@pytest.fixture
def usuario(app, lojas):
    return criar_usuario(app, 'joana', loja_id=lojas[0], email='joana@loja.com')


@pytest.fixture
def outro_usuario(app, lojas):
    return criar_usuario(app, 'pedro', loja_id=lojas[1], email='pedro@loja.com')


@pytest.fixture
def admin(app, lojas):
    return criar_usuario(app, 'gerente', role='admin', loja_id=lojas[0])


@pytest.fixture
def super_admin(app, lojas):
    return criar_usuario(app, 'mestre', role='super_admin', loja_id=lojas[0])


@pytest.fixture
def auth(app, usuario):
    return cabecalho(app, usuario)


@pytest.fixture
def auth_outro(app, outro_usuario):
    return cabecalho(app, outro_usuario)


@pytest.fixture
def auth_admin(app, admin):
    return cabecalho(app, admin)


@pytest.fixture
def auth_super(app, super_admin):
    return cabecalho(app, super_admin)
