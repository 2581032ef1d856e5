import csv
import io
import json
from datetime import date, datetime

from pydantic import ValidationError


def _celula(valor):
    if valor is None:
        return ''
    if isinstance(valor, bool):
        return 'true' if valor else 'false'
    if isinstance(valor, (dict, list)):
        return json.dumps(valor, ensure_ascii=False)
    if isinstance(valor, (datetime, date)):
        return valor.isoformat()
    return valor


def exportar_csv(registros, colunas):
    """Gera o CSV (com cabeçalho) dos registros. `registros` são dicts."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(colunas)
    for registro in registros:
        writer.writerow([_celula(registro.get(coluna)) for coluna in colunas])
    output.seek(0)
    return output.getvalue()


def resposta_csv(conteudo, nome_arquivo):
    return conteudo, 200, {
        'Content-Type': 'text/csv; charset=utf-8',
        'Content-Disposition': f'attachment; filename={nome_arquivo}'
    }


def _valor_importado(texto):
    texto = texto.strip()
    if texto[:1] in ('{', '['):
        try:
            return json.loads(texto)
        except ValueError:
            return texto
    return texto


def formatar_erros_validacao(erro):
    mensagens = []
    for item in erro.errors():
        campo = '.'.join(str(p) for p in item.get('loc', ()))
        mensagem = item.get('msg', '').replace('Value error, ', '')
        mensagens.append(f"{campo}: {mensagem}" if campo else mensagem)
    return mensagens


def importar_csv(texto, esquema):
    """Valida cada linha do CSV com o esquema.

    Devolve (validos, erros): validos é uma lista de instâncias do esquema e
    erros uma lista de {'linha', 'erros'} com a numeração do arquivo.
    """
    reader = csv.DictReader(io.StringIO((texto or '').lstrip('\ufeff')))
    validos = []
    erros = []
    for linha in reader:
        numero = reader.line_num
        dados = {
            chave.strip(): _valor_importado(valor)
            for chave, valor in linha.items()
            if chave and valor is not None and valor.strip() != ''
        }
        if not dados:
            continue
        try:
            validos.append(esquema.model_validate(dados))
        except ValidationError as e:
            erros.append({'linha': numero, 'erros': formatar_erros_validacao(e)})
    return validos, erros
