"""Créditos e assinaturas via Stripe.

O saldo de créditos fica no usuário; toda movimentação gera uma
TransacaoCredito com o saldo resultante. Eventos do webhook são gravados em
EventoWebhook e um evento já processado é ignorado se chegar de novo.
"""
import logging
from datetime import datetime

import stripe
from flask import current_app

from erros import ErroAplicacao, ErroCobranca, ErroValidacao, CreditosInsuficientes, NaoEncontrado
from modelos import (Assinatura, EventoWebhook, HistoricoCobranca, TransacaoCredito, Usuario,
                     db)
from notificacoes import email_boas_vindas_assinatura, email_falha_pagamento

logger = logging.getLogger(__name__)

PLANOS = {
    'basic': {'nome': 'Básico', 'creditos_mensais': 1000, 'config_preco': 'STRIPE_PRICE_BASIC'},
    'premium': {'nome': 'Premium', 'creditos_mensais': 3000, 'config_preco': 'STRIPE_PRICE_PREMIUM'},
    'master': {'nome': 'Master', 'creditos_mensais': 10000, 'config_preco': 'STRIPE_PRICE_MASTER'},
}

PACOTES_CREDITOS = {
    'starter': {'nome': 'Starter', 'creditos': 500, 'bonus': 0, 'preco': 29.90},
    'basico': {'nome': 'Básico', 'creditos': 1000, 'bonus': 100, 'preco': 49.90},
    'avancado': {'nome': 'Avançado', 'creditos': 2500, 'bonus': 500, 'preco': 99.90},
    'profissional': {'nome': 'Profissional', 'creditos': 5000, 'bonus': 1500, 'preco': 179.90},
}

CUSTO_RECURSOS = {
    'descricao_html': 1,
}

STATUS_ASSINATURA = {
    'active': 'ativa',
    'trialing': 'teste',
    'past_due': 'pendente',
    'unpaid': 'inadimplente',
    'canceled': 'cancelada',
    'incomplete': 'incompleta',
    'incomplete_expired': 'expirada',
    'paused': 'pausada',
}


def _data(timestamp):
    return datetime.fromtimestamp(timestamp) if timestamp else None


# ==============================================================================
# CRÉDITOS
# ==============================================================================
def adicionar_creditos(usuario, quantidade, tipo, descricao, referencia=None):
    """Soma (ou subtrai, se negativo) créditos e registra a transação. Não faz commit."""
    novo_saldo = (usuario.saldo_creditos or 0) + quantidade
    if novo_saldo < 0:
        raise CreditosInsuficientes(f"Saldo insuficiente: {usuario.saldo_creditos or 0} créditos")
    usuario.saldo_creditos = novo_saldo
    transacao = TransacaoCredito(
        usuario_id=usuario.id,
        quantidade=quantidade,
        tipo=tipo,
        descricao=descricao,
        referencia=referencia,
        saldo_apos=novo_saldo,
    )
    db.session.add(transacao)
    logger.info(f"Créditos {quantidade:+d} para {usuario.username} ({tipo}); saldo {novo_saldo}")
    return transacao


def consumir_creditos(usuario, recurso, referencia=None):
    custo = CUSTO_RECURSOS.get(recurso)
    if custo is None:
        raise ErroValidacao(f"Recurso sem custo definido: {recurso}")
    saldo = usuario.saldo_creditos or 0
    if saldo < custo:
        raise CreditosInsuficientes(f"Este recurso custa {custo} crédito(s) e seu saldo é {saldo}")
    return adicionar_creditos(usuario, -custo, 'uso', f"Uso: {recurso}", referencia)


# ==============================================================================
# SERVIÇO STRIPE
# ==============================================================================
class ServicoCobranca:

    def __init__(self, config=None):
        self.config = config if config is not None else current_app.config
        stripe.api_key = self.config.get('STRIPE_SECRET_KEY')

    def _exigir_configuracao(self):
        if not self.config.get('STRIPE_SECRET_KEY'):
            raise ErroCobranca("Pagamentos não configurados neste ambiente")

    def _urls(self, success_url, cancel_url, sufixo):
        base = self.config.get('FRONTEND_URL', 'http://localhost:5173').rstrip('/')
        return (success_url or f"{base}/{sufixo}?status=sucesso&session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url or f"{base}/{sufixo}?status=cancelado")

    def preco_do_plano(self, plano):
        if plano not in PLANOS:
            raise ErroValidacao(f"Plano inválido: {plano}")
        preco = self.config.get(PLANOS[plano]['config_preco'])
        if not preco:
            raise ErroCobranca(f"Preço do plano {plano} não configurado")
        return preco

    def plano_do_preco(self, preco_id):
        for chave, plano in PLANOS.items():
            if preco_id and self.config.get(plano['config_preco']) == preco_id:
                return chave
        return None

    def listar_planos(self):
        return [
            {'id': chave, 'nome': p['nome'], 'creditos_mensais': p['creditos_mensais'],
             'disponivel': bool(self.config.get(p['config_preco']))}
            for chave, p in PLANOS.items()
        ]

    def obter_ou_criar_cliente(self, usuario):
        self._exigir_configuracao()
        if usuario.stripe_customer_id:
            return usuario.stripe_customer_id
        try:
            cliente = stripe.Customer.create(
                email=usuario.email,
                name=usuario.nome or usuario.username,
                metadata={'usuario_id': str(usuario.id)},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe: falha ao criar cliente para {usuario.username}: {e}")
            raise ErroCobranca(f"Não foi possível criar o cliente: {e.user_message or e}")
        usuario.stripe_customer_id = cliente.id
        db.session.commit()
        logger.info(f"Cliente Stripe {cliente.id} criado para {usuario.username}")
        return cliente.id

    def criar_checkout_assinatura(self, usuario, plano, success_url=None, cancel_url=None):
        preco = self.preco_do_plano(plano)
        cliente = self.obter_ou_criar_cliente(usuario)
        sucesso, cancelado = self._urls(success_url, cancel_url, 'assinatura')
        metadados = {'tipo': 'assinatura', 'usuario_id': str(usuario.id), 'plano': plano}
        try:
            sessao = stripe.checkout.Session.create(
                customer=cliente,
                mode='subscription',
                line_items=[{'price': preco, 'quantity': 1}],
                success_url=sucesso,
                cancel_url=cancelado,
                metadata=metadados,
                subscription_data={'metadata': metadados},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe: falha no checkout de assinatura ({usuario.username}): {e}")
            raise ErroCobranca(f"Falha ao iniciar checkout: {e.user_message or e}")
        logger.info(f"Checkout de assinatura {sessao.id} ({plano}) para {usuario.username}")
        return {'session_id': sessao.id, 'url': sessao.url}

    def criar_checkout_creditos(self, usuario, pacote, quantidade=1, success_url=None, cancel_url=None):
        dados = PACOTES_CREDITOS.get(pacote)
        if not dados:
            raise ErroValidacao(f"Pacote inválido: {pacote}")
        cliente = self.obter_ou_criar_cliente(usuario)
        sucesso, cancelado = self._urls(success_url, cancel_url, 'creditos')
        creditos = (dados['creditos'] + dados['bonus']) * quantidade
        try:
            sessao = stripe.checkout.Session.create(
                customer=cliente,
                mode='payment',
                line_items=[{
                    'price_data': {
                        'currency': 'brl',
                        'unit_amount': int(round(dados['preco'] * 100)),
                        'product_data': {'name': f"Pacote {dados['nome']} ({dados['creditos'] + dados['bonus']} créditos)"},
                    },
                    'quantity': quantidade,
                }],
                success_url=sucesso,
                cancel_url=cancelado,
                metadata={
                    'tipo': 'creditos',
                    'usuario_id': str(usuario.id),
                    'pacote': pacote,
                    'quantidade': str(quantidade),
                    'creditos': str(creditos),
                },
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe: falha no checkout de créditos ({usuario.username}): {e}")
            raise ErroCobranca(f"Falha ao iniciar checkout: {e.user_message or e}")
        logger.info(f"Checkout de créditos {sessao.id} ({creditos} créditos) para {usuario.username}")
        return {'session_id': sessao.id, 'url': sessao.url, 'creditos': creditos}

    def criar_portal_cliente(self, usuario, return_url=None):
        if not usuario.stripe_customer_id:
            raise NaoEncontrado("Usuário ainda não possui cadastro de cobrança")
        self._exigir_configuracao()
        base = self.config.get('FRONTEND_URL', 'http://localhost:5173').rstrip('/')
        try:
            portal = stripe.billing_portal.Session.create(
                customer=usuario.stripe_customer_id,
                return_url=return_url or f"{base}/assinatura",
            )
        except stripe.StripeError as e:
            raise ErroCobranca(f"Falha ao abrir portal: {e.user_message or e}")
        return {'url': portal.url}

    def assinatura_atual(self, usuario):
        return (Assinatura.query.filter_by(usuario_id=usuario.id)
                .order_by(Assinatura.criado_em.desc(), Assinatura.id.desc()).first())

    def cancelar_assinatura(self, usuario, no_fim_periodo=True):
        assinatura = self.assinatura_atual(usuario)
        if not assinatura or assinatura.status == 'cancelada':
            raise NaoEncontrado("Nenhuma assinatura ativa")
        self._exigir_configuracao()
        try:
            if no_fim_periodo:
                stripe.Subscription.modify(assinatura.stripe_subscription_id, cancel_at_period_end=True)
                assinatura.cancelar_no_fim = True
            else:
                stripe.Subscription.cancel(assinatura.stripe_subscription_id)
                assinatura.status = 'cancelada'
                assinatura.cancelada_em = datetime.now()
        except stripe.StripeError as e:
            raise ErroCobranca(f"Falha ao cancelar assinatura: {e.user_message or e}")
        db.session.commit()
        logger.info(f"Assinatura {assinatura.stripe_subscription_id} cancelada (fim do período={no_fim_periodo})")
        return assinatura

    def trocar_plano(self, usuario, plano):
        assinatura = self.assinatura_atual(usuario)
        if not assinatura or assinatura.status not in ('ativa', 'teste'):
            raise NaoEncontrado("Nenhuma assinatura ativa")
        preco = self.preco_do_plano(plano)
        try:
            remota = stripe.Subscription.retrieve(assinatura.stripe_subscription_id)
            item_id = remota['items']['data'][0]['id']
            stripe.Subscription.modify(
                assinatura.stripe_subscription_id,
                items=[{'id': item_id, 'price': preco}],
                proration_behavior='create_prorations',
            )
        except stripe.StripeError as e:
            raise ErroCobranca(f"Falha ao trocar plano: {e.user_message or e}")
        assinatura.plano = plano
        assinatura.creditos_mensais = PLANOS[plano]['creditos_mensais']
        db.session.commit()
        return assinatura

    def listar_faturas(self, usuario, limite=20):
        if not usuario.stripe_customer_id:
            return []
        self._exigir_configuracao()
        try:
            faturas = stripe.Invoice.list(customer=usuario.stripe_customer_id, limit=limite)
        except stripe.StripeError as e:
            raise ErroCobranca(f"Falha ao listar faturas: {e.user_message or e}")
        return [
            {
                'id': f['id'],
                'numero': f.get('number'),
                'status': f.get('status'),
                'valor': (f.get('amount_paid') or f.get('amount_due') or 0) / 100,
                'moeda': f.get('currency'),
                'criada_em': _data(f.get('created')).isoformat() if f.get('created') else None,
                'pdf': f.get('invoice_pdf'),
                'url': f.get('hosted_invoice_url'),
            }
            for f in faturas['data']
        ]

    # ==========================================================================
    # WEBHOOK
    # ==========================================================================
    def processar_webhook(self, payload, assinatura_cabecalho):
        segredo = self.config.get('STRIPE_WEBHOOK_SECRET')
        if not segredo:
            raise ErroCobranca("Webhook não configurado")
        try:
            evento = stripe.Webhook.construct_event(payload, assinatura_cabecalho, segredo)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Webhook rejeitado: {e}")
            raise ErroValidacao("Assinatura do webhook inválida")

        evento_id = evento['id']
        tipo = evento['type']
        registro = db.session.get(EventoWebhook, evento_id)
        if registro and registro.processado:
            logger.info(f"Webhook {evento_id} ({tipo}) já processado, ignorando")
            return {'recebido': True, 'duplicado': True}
        if not registro:
            registro = EventoWebhook(id=evento_id, tipo=tipo)
            db.session.add(registro)
            db.session.commit()

        manipulador = self.MANIPULADORES.get(tipo)
        try:
            if manipulador:
                manipulador(self, evento['data']['object'])
            else:
                logger.info(f"Webhook {tipo} sem tratamento")
            registro.processado = True
            registro.processado_em = datetime.now()
            registro.erro = None
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            registro = db.session.get(EventoWebhook, evento_id)
            registro.erro = str(e)
            db.session.commit()
            logger.error(f"❌ Erro ao processar webhook {evento_id} ({tipo}): {e}")
            raise ErroAplicacao(f"Falha ao processar evento {tipo}") from e

        return {'recebido': True, 'duplicado': False}

    def _usuario_do_objeto(self, obj):
        metadados = obj.get('metadata') or {}
        if metadados.get('usuario_id'):
            usuario = db.session.get(Usuario, int(metadados['usuario_id']))
            if usuario:
                return usuario
        if obj.get('customer'):
            return Usuario.query.filter_by(stripe_customer_id=obj['customer']).first()
        return None

    def _checkout_concluido(self, sessao):
        usuario = self._usuario_do_objeto(sessao)
        if not usuario:
            logger.warning(f"Checkout {sessao['id']} sem usuário associado")
            return
        metadados = sessao.get('metadata') or {}
        valor = (sessao.get('amount_total') or 0) / 100

        if sessao.get('customer') and not usuario.stripe_customer_id:
            usuario.stripe_customer_id = sessao['customer']

        if metadados.get('tipo') == 'creditos':
            if sessao.get('payment_status') != 'paid':
                logger.warning(f"Checkout {sessao['id']} concluído sem pagamento confirmado")
                return
            creditos = int(metadados.get('creditos', 0))
            adicionar_creditos(usuario, creditos, 'compra',
                               f"Compra de créditos: pacote {metadados.get('pacote')}", sessao['id'])
            tipo = 'creditos'
            descricao = f"{creditos} créditos"
        else:
            tipo = 'assinatura'
            descricao = f"Assinatura {metadados.get('plano', '')}".strip()

        db.session.add(HistoricoCobranca(
            usuario_id=usuario.id,
            referencia=sessao['id'],
            valor=valor,
            moeda=sessao.get('currency') or 'brl',
            status='pago',
            tipo=tipo,
            descricao=descricao,
        ))

    def _checkout_expirado(self, sessao):
        usuario = self._usuario_do_objeto(sessao)
        logger.info(f"Checkout {sessao['id']} expirou")
        if usuario:
            db.session.add(HistoricoCobranca(
                usuario_id=usuario.id,
                referencia=sessao['id'],
                valor=(sessao.get('amount_total') or 0) / 100,
                status='expirado',
                tipo=(sessao.get('metadata') or {}).get('tipo'),
                descricao='Checkout expirado',
            ))

    def _assinatura_atualizada(self, sub):
        usuario = self._usuario_do_objeto(sub)
        if not usuario:
            logger.warning(f"Assinatura {sub['id']} sem usuário associado")
            return
        if sub.get('customer') and not usuario.stripe_customer_id:
            usuario.stripe_customer_id = sub['customer']

        assinatura = Assinatura.query.filter_by(stripe_subscription_id=sub['id']).first()
        status_anterior = assinatura.status if assinatura else None
        if not assinatura:
            assinatura = Assinatura(usuario_id=usuario.id, stripe_subscription_id=sub['id'])
            db.session.add(assinatura)

        itens = (sub.get('items') or {}).get('data') or []
        item = itens[0] if itens else {}
        preco_id = (item.get('price') or {}).get('id')
        plano = self.plano_do_preco(preco_id) or (sub.get('metadata') or {}).get('plano') or assinatura.plano

        assinatura.stripe_customer_id = sub.get('customer')
        assinatura.plano = plano
        assinatura.status = STATUS_ASSINATURA.get(sub.get('status'), sub.get('status'))
        assinatura.creditos_mensais = PLANOS[plano]['creditos_mensais'] if plano in PLANOS else 0
        assinatura.cancelar_no_fim = bool(sub.get('cancel_at_period_end'))
        inicio = sub.get('current_period_start') or item.get('current_period_start') or sub.get('start_date')
        fim = sub.get('current_period_end') or item.get('current_period_end')
        assinatura.inicio = assinatura.inicio or _data(inicio)
        assinatura.proxima_cobranca = _data(fim)

        # renovações (inclusive após atraso) chegam pela fatura subscription_cycle
        if assinatura.status == 'ativa' and status_anterior in (None, 'incompleta', 'teste'):
            if assinatura.creditos_mensais:
                adicionar_creditos(usuario, assinatura.creditos_mensais, 'assinatura',
                                   f"Créditos do plano {plano}", sub['id'])
            email_boas_vindas_assinatura(usuario, PLANOS.get(plano, {}).get('nome', plano))

    def _assinatura_removida(self, sub):
        assinatura = Assinatura.query.filter_by(stripe_subscription_id=sub['id']).first()
        if not assinatura:
            logger.warning(f"Assinatura {sub['id']} removida mas não encontrada localmente")
            return
        assinatura.status = 'cancelada'
        assinatura.cancelada_em = datetime.now()

    def _fatura_paga(self, fatura):
        usuario = self._usuario_do_objeto(fatura)
        if not usuario:
            return
        db.session.add(HistoricoCobranca(
            usuario_id=usuario.id,
            referencia=fatura['id'],
            valor=(fatura.get('amount_paid') or 0) / 100,
            moeda=fatura.get('currency') or 'brl',
            status='pago',
            tipo='fatura',
            descricao='Fatura paga',
        ))
        if fatura.get('billing_reason') == 'subscription_cycle' and fatura.get('subscription'):
            assinatura = Assinatura.query.filter_by(stripe_subscription_id=fatura['subscription']).first()
            if assinatura and assinatura.creditos_mensais:
                adicionar_creditos(usuario, assinatura.creditos_mensais, 'assinatura',
                                   f"Renovação do plano {assinatura.plano}", fatura['id'])

    def _fatura_falhou(self, fatura):
        usuario = self._usuario_do_objeto(fatura)
        if not usuario:
            return
        valor = (fatura.get('amount_due') or 0) / 100
        db.session.add(HistoricoCobranca(
            usuario_id=usuario.id,
            referencia=fatura['id'],
            valor=valor,
            moeda=fatura.get('currency') or 'brl',
            status='falhou',
            tipo='fatura',
            descricao='Falha no pagamento da fatura',
        ))
        email_falha_pagamento(usuario, valor)

    MANIPULADORES = {
        'checkout.session.completed': _checkout_concluido,
        'checkout.session.expired': _checkout_expirado,
        'customer.subscription.created': _assinatura_atualizada,
        'customer.subscription.updated': _assinatura_atualizada,
        'customer.subscription.deleted': _assinatura_removida,
        'invoice.payment_succeeded': _fatura_paga,
        'invoice.payment_failed': _fatura_falhou,
    }
