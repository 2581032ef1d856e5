import re
import unicodedata
from datetime import date, datetime


def _troca_separadores(texto):
    return texto.replace(",", "X").replace(".", ",").replace("X", ".")


def moeda(v):
    try:
        return _troca_separadores(f"R$ {float(v or 0):,.2f}")
    except (TypeError, ValueError):
        return "R$ 0,00"


def peso(v):
    try:
        return _troca_separadores(f"{float(v or 0):,.3f}")
    except (TypeError, ValueError):
        return "0,000"


def percentual(v, casas=2):
    try:
        return _troca_separadores(f"{float(v or 0):,.{casas}f}") + "%"
    except (TypeError, ValueError):
        return "0," + "0" * casas + "%"


def data_br(d):
    if not d:
        return ""
    if isinstance(d, str):
        try:
            d = datetime.fromisoformat(d)
        except ValueError:
            return d
    return d.strftime('%d/%m/%Y')


def data_hora_br(d):
    if not d:
        return ""
    if isinstance(d, date) and not isinstance(d, datetime):
        return d.strftime('%d/%m/%Y')
    return d.strftime('%d/%m/%Y %H:%M')


def somente_digitos(valor):
    return re.sub(r'\D', '', str(valor or ''))


def formatar_cnpj(valor):
    digitos = somente_digitos(valor)
    if len(digitos) != 14:
        return valor
    return re.sub(r'^(\d{2})(\d{3})(\d{3})(\d{4})(\d{2})$', r'\1.\2.\3/\4-\5', digitos)


def formatar_cpf(valor):
    digitos = somente_digitos(valor)
    if len(digitos) != 11:
        return valor
    return re.sub(r'^(\d{3})(\d{3})(\d{3})(\d{2})$', r'\1.\2.\3-\4', digitos)


def formatar_telefone(valor):
    """Celular com 11 dígitos ou fixo com 10; qualquer outra coisa volta como veio."""
    digitos = somente_digitos(valor)
    if len(digitos) == 11:
        return f"({digitos[:2]}) {digitos[2:7]}-{digitos[7:]}"
    if len(digitos) == 10:
        return f"({digitos[:2]}) {digitos[2:6]}-{digitos[6:]}"
    return valor


def formatar_cep(valor):
    digitos = somente_digitos(valor)
    if len(digitos) != 8:
        return valor
    return f"{digitos[:5]}-{digitos[5:]}"


def parse_valor(valor):
    """Converte "R$ 1.234,56", "R$ 1.500", "12,5%" ou números em float. Vazio vira 0.

    Texto que não é número levanta ValueError.
    """
    if valor is None or valor == '':
        return 0.0
    if isinstance(valor, (int, float)):
        return float(valor)
    texto = re.sub(r'[R$%\s]', '', str(valor))
    if ',' in texto or re.fullmatch(r'-?\d{1,3}(\.\d{3})+', texto):
        texto = texto.replace('.', '').replace(',', '.')
    try:
        return float(texto)
    except ValueError:
        raise ValueError(f"Valor numérico inválido: {valor}") from None


def slugify(texto):
    texto = unicodedata.normalize('NFKD', str(texto or '')).encode('ascii', 'ignore').decode('ascii')
    texto = re.sub(r'[^a-zA-Z0-9]+', '-', texto.lower())
    return texto.strip('-')
