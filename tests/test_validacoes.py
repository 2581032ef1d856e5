from validacoes import (validar_cnpj, validar_cpf, validar_dimensoes, validar_email, validar_nota,
                        validar_obrigatorios, validar_peso, validar_senha, validar_telefone)


def test_cpf():
    assert validar_cpf("529.982.247-25") == []
    assert validar_cpf("529.982.247-26") == ["CPF inválido"]
    assert validar_cpf("111.111.111-11") == ["CPF inválido"]
    assert validar_cpf("123") == ["CPF deve ter 11 dígitos"]


def test_cnpj():
    assert validar_cnpj("11.222.333/0001-81") == []
    assert validar_cnpj("11.222.333/0001-82") == ["CNPJ inválido"]
    assert validar_cnpj("00000000000000") == ["CNPJ inválido"]
    assert validar_cnpj("1122") == ["CNPJ deve ter 14 dígitos"]


def test_email_e_telefone():
    assert validar_email("contato@loja.com.br") == []
    assert validar_email("sem-arroba") == ["Email inválido"]
    assert validar_email(None) == ["Email inválido"]
    assert validar_telefone("(11) 98765-4321") == []
    assert validar_telefone("9876") != []


def test_senha_forte():
    assert validar_senha("Senha@123") == []
    erros = validar_senha("abc")
    assert "Senha deve ter no mínimo 8 caracteres" in erros
    assert "Senha deve conter ao menos uma letra maiúscula" in erros
    assert "Senha deve conter ao menos um número" in erros
    assert "Senha deve conter ao menos um caractere especial" in erros


def test_nota():
    assert validar_nota(5) == []
    assert validar_nota("3") == []
    assert validar_nota(0) == ["Nota deve estar entre 1 e 5"]
    assert validar_nota(2.5) == ["Nota deve ser um número inteiro"]
    assert validar_nota("x") == ["Nota deve ser um número inteiro"]


def test_obrigatorios():
    erros = validar_obrigatorios({'nome': '  ', 'sku': 'A1'}, ['nome', 'sku', 'ean'])
    assert erros == ["Campo obrigatório: nome", "Campo obrigatório: ean"]


def test_peso_e_dimensoes():
    assert validar_peso(2.5) == []
    assert validar_peso(0) == ["Peso deve ser maior que zero"]
    assert validar_peso(1500) == ["Peso não pode exceder 1000 kg"]
    assert validar_dimensoes({'comprimento': 10, 'largura': 5, 'altura': 2}) == []
    assert validar_dimensoes({'comprimento': 10, 'largura': 0}) == [
        "Dimensão deve ser maior que zero: largura",
        "Dimensão inválida: altura",
    ]
