import pytest

from conftest import criar_usuario
from erros import NaoEncontrado
from inserir_caixas import CAIXAS, inserir_caixas
from modelos import Caixa


def test_insere_catalogo_na_loja_do_primeiro_admin(app, lojas):
    criar_usuario(app, 'cliente', loja_id=lojas[0])
    criar_usuario(app, 'dono', role='admin', loja_id=lojas[1])
    with app.app_context():
        resultado = inserir_caixas()
        assert resultado['inseridas'] == len(CAIXAS) - 2
        assert [f['codigo'] for f in resultado['falhas']] == ['SEM CÓDIGO', 'SEM CÓDIGO']
        assert Caixa.query.filter_by(loja_id=lojas[1]).count() == len(CAIXAS) - 2

        tabuleiro = Caixa.query.filter_by(codigo='151 TABULEIRO').one()
        assert tabuleiro.altura == 0
        assert tabuleiro.papel is None
        assert tabuleiro.tipo_onda == 'SIMPLES'


def test_loja_informada_dispensa_admin(app, lojas):
    with app.app_context():
        resultado = inserir_caixas(loja_id=lojas[0], caixas=CAIXAS[:3])
        assert resultado == {'inseridas': 3, 'falhas': []}
        assert Caixa.query.filter_by(loja_id=lojas[0], tem_logo=False).count() == 3


def test_sem_admin(app, lojas):
    with app.app_context():
        with pytest.raises(NaoEncontrado):
            inserir_caixas()


def test_comando_flask(app, lojas):
    runner = app.test_cli_runner()
    resultado = runner.invoke(args=['inserir-caixas', '--loja-id', str(lojas[0])])
    assert resultado.exit_code == 0
    assert f'{len(CAIXAS) - 2} caixas inseridas, 2 falhas.' in resultado.output
