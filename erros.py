"""Exceções da aplicação. Cada uma carrega o status HTTP devolvido ao cliente."""


class ErroAplicacao(Exception):
    status = 500
    mensagem_padrao = "Erro interno"

    def __init__(self, mensagem=None, detalhes=None):
        self.mensagem = mensagem or self.mensagem_padrao
        self.detalhes = detalhes
        super().__init__(self.mensagem)

    def para_dict(self):
        corpo = {'erro': self.mensagem}
        if self.detalhes:
            corpo['detalhes'] = self.detalhes
        return corpo


class ErroValidacao(ErroAplicacao):
    status = 400
    mensagem_padrao = "Dados inválidos"


class NaoAutenticado(ErroAplicacao):
    status = 401
    mensagem_padrao = "Autenticação necessária"


class CreditosInsuficientes(ErroAplicacao):
    status = 402
    mensagem_padrao = "Créditos insuficientes"


class AcessoNegado(ErroAplicacao):
    status = 403
    mensagem_padrao = "Acesso negado"


class NaoEncontrado(ErroAplicacao):
    status = 404
    mensagem_padrao = "Registro não encontrado"


class Conflito(ErroAplicacao):
    status = 409
    mensagem_padrao = "Registro duplicado"


class ErroCobranca(ErroAplicacao):
    status = 502
    mensagem_padrao = "Falha ao comunicar com o provedor de pagamento"
