"""Validações de campos usadas pelos esquemas e pelo importador de CSV.

Todas as funções devolvem uma lista de mensagens; lista vazia significa válido.
"""
import re

from formatadores import somente_digitos

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PESOS_CNPJ_1 = [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]
PESOS_CNPJ_2 = [6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]


def _digito_cpf(digitos, peso_inicial):
    soma = sum(int(d) * p for d, p in zip(digitos, range(peso_inicial, 1, -1)))
    resto = 11 - (soma % 11)
    return 0 if resto > 9 else resto


def _digito_cnpj(digitos, pesos):
    resto = sum(int(d) * p for d, p in zip(digitos, pesos)) % 11
    return 0 if resto < 2 else 11 - resto


def validar_cpf(cpf):
    digitos = somente_digitos(cpf)
    if len(digitos) != 11:
        return ["CPF deve ter 11 dígitos"]
    if digitos == digitos[0] * 11:
        return ["CPF inválido"]
    if _digito_cpf(digitos[:9], 10) != int(digitos[9]):
        return ["CPF inválido"]
    if _digito_cpf(digitos[:10], 11) != int(digitos[10]):
        return ["CPF inválido"]
    return []


def validar_cnpj(cnpj):
    digitos = somente_digitos(cnpj)
    if len(digitos) != 14:
        return ["CNPJ deve ter 14 dígitos"]
    if digitos == digitos[0] * 14:
        return ["CNPJ inválido"]
    if _digito_cnpj(digitos[:12], PESOS_CNPJ_1) != int(digitos[12]):
        return ["CNPJ inválido"]
    if _digito_cnpj(digitos[:13], PESOS_CNPJ_2) != int(digitos[13]):
        return ["CNPJ inválido"]
    return []


def validar_email(email):
    if not email or not EMAIL_RE.match(str(email).strip()):
        return ["Email inválido"]
    return []


def validar_telefone(telefone):
    if len(somente_digitos(telefone)) not in (10, 11):
        return ["Telefone deve ter 10 ou 11 dígitos"]
    return []


def validar_senha(senha):
    senha = senha or ''
    erros = []
    if len(senha) < 8:
        erros.append("Senha deve ter no mínimo 8 caracteres")
    if not re.search(r'[A-Z]', senha):
        erros.append("Senha deve conter ao menos uma letra maiúscula")
    if not re.search(r'[a-z]', senha):
        erros.append("Senha deve conter ao menos uma letra minúscula")
    if not re.search(r'\d', senha):
        erros.append("Senha deve conter ao menos um número")
    if not re.search(r'[^A-Za-z0-9]', senha):
        erros.append("Senha deve conter ao menos um caractere especial")
    return erros


def validar_nota(nota):
    try:
        valor = int(nota)
    except (TypeError, ValueError):
        return ["Nota deve ser um número inteiro"]
    if valor != nota and str(valor) != str(nota):
        return ["Nota deve ser um número inteiro"]
    if not 1 <= valor <= 5:
        return ["Nota deve estar entre 1 e 5"]
    return []


def validar_obrigatorios(dados, campos):
    erros = []
    for campo in campos:
        valor = dados.get(campo)
        if valor is None or (isinstance(valor, str) and not valor.strip()):
            erros.append(f"Campo obrigatório: {campo}")
    return erros


def validar_peso(peso):
    try:
        valor = float(peso)
    except (TypeError, ValueError):
        return ["Peso inválido"]
    if valor <= 0:
        return ["Peso deve ser maior que zero"]
    if valor > 1000:
        return ["Peso não pode exceder 1000 kg"]
    return []


def validar_dimensoes(dimensoes):
    erros = []
    for campo in ('comprimento', 'largura', 'altura'):
        try:
            valor = float((dimensoes or {}).get(campo))
        except (TypeError, ValueError):
            erros.append(f"Dimensão inválida: {campo}")
            continue
        if valor <= 0:
            erros.append(f"Dimensão deve ser maior que zero: {campo}")
    return erros
