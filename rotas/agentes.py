import logging

from flask import Blueprint, g, jsonify, request

from cobranca import CUSTO_RECURSOS, consumir_creditos
from descricao_html import gerar_html
from esquemas import DescricaoHtmlEntrada
from modelos import Produto, db
from seguranca import login_required, obter_da_loja

logger = logging.getLogger(__name__)

agentes_bp = Blueprint('agentes', __name__, url_prefix='/api/agentes')


@agentes_bp.route('/descricao-html', methods=['POST'])
@login_required
def descricao_html():
    """Gera a descrição HTML e debita os créditos do recurso.

    Com `produto_id`, o HTML também é gravado em produto.descricoes['html'].
    """
    dados = DescricaoHtmlEntrada.model_validate(request.get_json(silent=True) or {})
    produto = obter_da_loja(Produto, dados.produto_id) if dados.produto_id else None
    resultado = gerar_html(dados.texto)

    try:
        consumir_creditos(g.usuario, 'descricao_html', referencia=f"produto:{produto.id}" if produto else None)
        if produto:
            descricoes = dict(produto.descricoes or {})
            descricoes['html'] = resultado['html']
            produto.descricoes = descricoes
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Descrição HTML gerada por {g.usuario.username} ({resultado['caracteres']} caracteres)")
    resultado['creditos_usados'] = CUSTO_RECURSOS['descricao_html']
    resultado['saldo_creditos'] = g.usuario.saldo_creditos
    return jsonify(resultado)
