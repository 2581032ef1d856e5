import logging
import os
import smtplib
from email.mime.text import MIMEText

from formatadores import moeda

logger = logging.getLogger(__name__)


# ==============================================================================
# ENVIO DE EMAILS
# ==============================================================================
def enviar_email(assunto, mensagem, destinatario=None):
    """Envia email pelo SMTP configurado. Devolve False se não configurado ou em falha."""
    email_remetente = os.getenv("ALERT_EMAIL_FROM", "alerta@seusistema.com")
    email_destino = destinatario or os.getenv("ALERT_EMAIL_TO")
    email_senha = os.getenv("ALERT_EMAIL_PASSWORD")

    if not email_senha or not email_destino:
        logger.warning(f"Email não enviado (SMTP não configurado): {assunto}")
        return False

    msg = MIMEText(mensagem, 'plain', 'utf-8')
    msg['Subject'] = f"[HUB E-COMMERCE] {assunto}"
    msg['From'] = email_remetente
    msg['To'] = email_destino

    try:
        host = os.getenv("SMTP_HOST", "smtp.gmail.com")
        porta = int(os.getenv("SMTP_PORT", 465))
        with smtplib.SMTP_SSL(host, porta) as server:
            server.login(email_remetente, email_senha)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"❌ Erro ao enviar email: {e}")
        return False

    logger.info(f"✅ Email enviado: {assunto}")
    return True


def email_boas_vindas_assinatura(usuario, plano):
    if not usuario.email:
        return False
    mensagem = (
        f"Olá, {usuario.nome or usuario.username}!\n\n"
        f"Sua assinatura do plano {plano} foi ativada com sucesso.\n"
        f"Os créditos mensais já estão disponíveis na sua conta.\n"
    )
    return enviar_email("Assinatura ativada", mensagem, usuario.email)


def email_falha_pagamento(usuario, valor):
    if not usuario.email:
        return False
    mensagem = (
        f"Olá, {usuario.nome or usuario.username}.\n\n"
        f"Não conseguimos processar o pagamento de {moeda(valor)}. "
        f"Atualize seu método de pagamento no portal do cliente para evitar o cancelamento.\n"
    )
    return enviar_email("Falha no pagamento", mensagem, usuario.email)
