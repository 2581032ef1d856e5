from datetime import date, datetime

import pytest

from formatadores import (data_br, data_hora_br, formatar_cep, formatar_cnpj, formatar_cpf,
                          formatar_telefone, moeda, parse_valor, percentual, peso, slugify)


def test_moeda_usa_separadores_brasileiros():
    assert moeda(1234.5) == "R$ 1.234,50"
    assert moeda(0) == "R$ 0,00"
    assert moeda(None) == "R$ 0,00"
    assert moeda("abc") == "R$ 0,00"


def test_peso_e_percentual():
    assert peso(1.5) == "1,500"
    assert percentual(12.5) == "12,50%"
    assert percentual(33.333, casas=1) == "33,3%"


@pytest.mark.parametrize("entrada,esperado", [
    ("R$ 1.234,56", 1234.56),
    ("12,5%", 12.5),
    ("1.5", 1.5),
    ("R$ 1.500", 1500.0),
    ("1.234.567", 1234567.0),
    (7, 7.0),
    ("", 0.0),
    (None, 0.0),
])
def test_parse_valor(entrada, esperado):
    assert parse_valor(entrada) == esperado


def test_parse_valor_texto_invalido():
    with pytest.raises(ValueError):
        parse_valor("abc")


def test_documentos_formatados():
    assert formatar_cnpj("11222333000181") == "11.222.333/0001-81"
    assert formatar_cpf("52998224725") == "529.982.247-25"
    assert formatar_cep("01310100") == "01310-100"
    assert formatar_cnpj("123") == "123"


def test_telefone_celular_fixo_e_invalido():
    assert formatar_telefone("11987654321") == "(11) 98765-4321"
    assert formatar_telefone("1133334444") == "(11) 3333-4444"
    assert formatar_telefone("123") == "123"


def test_datas():
    assert data_br(datetime(2024, 3, 5, 14, 30)) == "05/03/2024"
    assert data_br("2024-03-05") == "05/03/2024"
    assert data_br(None) == ""
    assert data_hora_br(datetime(2024, 3, 5, 14, 30)) == "05/03/2024 14:30"
    assert data_hora_br(date(2024, 3, 5)) == "05/03/2024"


def test_slugify_remove_acentos():
    assert slugify("Caçarola Média 22") == "cacarola-media-22"
    assert slugify(None) == ""
