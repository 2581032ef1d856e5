import re

from erros import ErroValidacao

MAX_CARACTERES = 2000
TAGS_PERMITIDAS = ('strong', 'i', 'u', 'br', 'p', 'ul', 'ol', 'li', 'em')

_TAG_PROIBIDA = re.compile(r'<(?!/?(?:%s)\b)[^>]*>' % '|'.join(TAGS_PERMITIDAS), re.IGNORECASE)
_TAG_PERMITIDA = re.compile(r'<(/?)(%s)\b[^>]*?(/?)>' % '|'.join(TAGS_PERMITIDAS), re.IGNORECASE)
_ITEM_NUMERADO = re.compile(r'^\d+\.\s')


def sanitizar_html(html):
    """Remove toda tag fora da lista permitida e os atributos das permitidas."""
    html = _TAG_PROIBIDA.sub('', html or '')
    return _TAG_PERMITIDA.sub(lambda m: f"<{m.group(1)}{m.group(2).lower()}{m.group(3)}>", html)


def _formatar_inline(texto):
    texto = re.sub(r'\*\*(.*?)\*\*', r'<strong>\1</strong>', texto)
    return re.sub(r'(?<!\*)\*([^*]+)\*(?!\*)', r'<i>\1</i>', texto)


def gerar_html(texto):
    """Converte texto com marcação leve em HTML para descrição de anúncio.

    **negrito**, *itálico*, linhas com "• " viram lista, "1. " lista numerada,
    linhas vazias viram espaçamento.
    """
    texto = (texto or '').replace('\r\n', '\n')
    if not texto.strip():
        raise ErroValidacao("Texto da descrição é obrigatório")
    if len(texto) > MAX_CARACTERES:
        raise ErroValidacao(f"Texto excede o limite de {MAX_CARACTERES} caracteres")

    partes = []
    lista_aberta = None

    def fechar_lista():
        nonlocal lista_aberta
        if lista_aberta:
            partes.append(f"</{lista_aberta}>")
            lista_aberta = None

    for linha in texto.split('\n'):
        conteudo = linha.strip()
        if conteudo.startswith('• '):
            if lista_aberta != 'ul':
                fechar_lista()
                partes.append('<ul>')
                lista_aberta = 'ul'
            partes.append(f"<li>{_formatar_inline(conteudo[2:])}</li>")
        elif _ITEM_NUMERADO.match(conteudo):
            if lista_aberta != 'ol':
                fechar_lista()
                partes.append('<ol>')
                lista_aberta = 'ol'
            partes.append(f"<li>{_formatar_inline(_ITEM_NUMERADO.sub('', conteudo, count=1))}</li>")
        else:
            fechar_lista()
            if conteudo:
                partes.append(f"<p>{_formatar_inline(conteudo)}</p>")
            else:
                partes.append('<p>&nbsp;</p>')
    fechar_lista()

    html = sanitizar_html(''.join(partes))
    return {'html': html, 'caracteres': len(texto), 'limite': MAX_CARACTERES}
