import logging

from flask import Blueprint, g, jsonify, request

from cobranca import CUSTO_RECURSOS, PACOTES_CREDITOS, ServicoCobranca
from esquemas import CheckoutAssinaturaEntrada, CheckoutCreditosEntrada
from modelos import HistoricoCobranca, TransacaoCredito
from seguranca import login_required

logger = logging.getLogger(__name__)

cobranca_bp = Blueprint('cobranca', __name__, url_prefix='/api/cobranca')


@cobranca_bp.route('/planos')
@login_required
def planos():
    return jsonify({
        'planos': ServicoCobranca().listar_planos(),
        'pacotes': [dict(id=chave, **p) for chave, p in PACOTES_CREDITOS.items()],
        'custos': CUSTO_RECURSOS,
    })


@cobranca_bp.route('/status')
@login_required
def status():
    assinatura = ServicoCobranca().assinatura_atual(g.usuario)
    return jsonify({
        'assinatura': assinatura.para_dict() if assinatura else None,
        'saldo_creditos': g.usuario.saldo_creditos or 0,
        'cliente_stripe': bool(g.usuario.stripe_customer_id),
    })


@cobranca_bp.route('/checkout-assinatura', methods=['POST'])
@login_required
def checkout_assinatura():
    dados = CheckoutAssinaturaEntrada.model_validate(request.get_json(silent=True) or {})
    return jsonify(ServicoCobranca().criar_checkout_assinatura(
        g.usuario, dados.plano, dados.success_url, dados.cancel_url))


@cobranca_bp.route('/checkout-creditos', methods=['POST'])
@login_required
def checkout_creditos():
    dados = CheckoutCreditosEntrada.model_validate(request.get_json(silent=True) or {})
    return jsonify(ServicoCobranca().criar_checkout_creditos(
        g.usuario, dados.pacote, dados.quantidade, dados.success_url, dados.cancel_url))


@cobranca_bp.route('/portal', methods=['POST'])
@login_required
def portal():
    dados = request.get_json(silent=True) or {}
    return jsonify(ServicoCobranca().criar_portal_cliente(g.usuario, dados.get('return_url')))


@cobranca_bp.route('/cancelar', methods=['POST'])
@login_required
def cancelar():
    dados = request.get_json(silent=True) or {}
    imediato = bool(dados.get('imediato', False))
    assinatura = ServicoCobranca().cancelar_assinatura(g.usuario, no_fim_periodo=not imediato)
    return jsonify(assinatura.para_dict())


@cobranca_bp.route('/trocar-plano', methods=['POST'])
@login_required
def trocar_plano():
    dados = CheckoutAssinaturaEntrada.model_validate(request.get_json(silent=True) or {})
    assinatura = ServicoCobranca().trocar_plano(g.usuario, dados.plano)
    return jsonify(assinatura.para_dict())


@cobranca_bp.route('/faturas')
@login_required
def faturas():
    return jsonify(ServicoCobranca().listar_faturas(g.usuario))


@cobranca_bp.route('/historico')
@login_required
def historico():
    registros = (HistoricoCobranca.query.filter_by(usuario_id=g.usuario.id)
                 .order_by(HistoricoCobranca.criado_em.desc(), HistoricoCobranca.id.desc()).limit(50).all())
    return jsonify([r.para_dict() for r in registros])


@cobranca_bp.route('/creditos')
@login_required
def creditos():
    limite = min(request.args.get('limite', 20, type=int), 100)
    transacoes = (TransacaoCredito.query.filter_by(usuario_id=g.usuario.id)
                  .order_by(TransacaoCredito.criado_em.desc(), TransacaoCredito.id.desc())
                  .limit(limite).all())
    return jsonify({
        'saldo': g.usuario.saldo_creditos or 0,
        'transacoes': [t.para_dict() for t in transacoes],
    })


@cobranca_bp.route('/webhook', methods=['POST'])
def webhook():
    payload = request.get_data()
    assinatura = request.headers.get('Stripe-Signature', '')
    return jsonify(ServicoCobranca().processar_webhook(payload, assinatura))
