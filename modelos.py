from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

from formatadores import data_br, formatar_cnpj, formatar_telefone, moeda

db = SQLAlchemy()


def _iso(d):
    return d.isoformat() if d else None


# ==============================================================================
# LOJAS E USUÁRIOS
# ==============================================================================
class Loja(db.Model):
    __tablename__ = 'lojas'
    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(120), nullable=False)
    ativo = db.Column(db.Boolean, default=True)
    criado_em = db.Column(db.DateTime, default=datetime.now)

    def para_dict(self):
        return {'id': self.id, 'nome': self.nome, 'ativo': self.ativo, 'criado_em': _iso(self.criado_em)}


class Usuario(db.Model):
    __tablename__ = 'usuarios'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=True)
    nome = db.Column(db.String(120))
    senha_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), default='user')
    ativo = db.Column(db.Boolean, default=True)
    stripe_customer_id = db.Column(db.String(100))
    saldo_creditos = db.Column(db.Integer, default=0, nullable=False)
    criado_em = db.Column(db.DateTime, default=datetime.now)
    loja_id = db.Column(db.Integer, db.ForeignKey('lojas.id'))
    loja = db.relationship('Loja')

    @property
    def is_admin(self):
        return self.role in ('admin', 'super_admin')

    @property
    def is_super_admin(self):
        return self.role == 'super_admin'

    def para_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'nome': self.nome,
            'role': self.role,
            'ativo': self.ativo,
            'loja_id': self.loja_id,
            'saldo_creditos': self.saldo_creditos,
            'criado_em': _iso(self.criado_em),
        }


class LogAuditoria(db.Model):
    __tablename__ = 'logs_auditoria'
    id = db.Column(db.Integer, primary_key=True)
    loja_id = db.Column(db.Integer, db.ForeignKey('lojas.id'))
    usuario_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'))
    acao = db.Column(db.String(50))  # 'CRIOU', 'EDITOU', 'EXCLUIU', 'LOTE', 'IMPORTOU'
    recurso = db.Column(db.String(50))
    recurso_id = db.Column(db.Integer)
    ip = db.Column(db.String(50))
    detalhes = db.Column(db.Text)
    data = db.Column(db.DateTime, default=datetime.now)
    usuario = db.relationship('Usuario')

    def para_dict(self):
        return {
            'id': self.id,
            'loja_id': self.loja_id,
            'usuario': self.usuario.username if self.usuario else None,
            'acao': self.acao,
            'recurso': self.recurso,
            'recurso_id': self.recurso_id,
            'ip': self.ip,
            'detalhes': self.detalhes,
            'data': _iso(self.data),
        }


# ==============================================================================
# DIRETÓRIO: FORNECEDORES, PARCEIROS E FERRAMENTAS
# ==============================================================================
class Fornecedor(db.Model):
    __tablename__ = 'fornecedores'
    id = db.Column(db.Integer, primary_key=True)
    nome_fantasia = db.Column(db.String(150), nullable=False)
    razao_social = db.Column(db.String(200), nullable=False)
    cnpj = db.Column(db.String(20))
    categoria = db.Column(db.String(80))
    descricao = db.Column(db.Text)
    logo = db.Column(db.String(255))
    observacoes = db.Column(db.Text)
    ativo = db.Column(db.Boolean, default=True)
    verificado = db.Column(db.Boolean, default=False)
    media_avaliacao = db.Column(db.Float, default=0)
    total_avaliacoes = db.Column(db.Integer, default=0)
    criado_em = db.Column(db.DateTime, default=datetime.now)
    contatos = db.relationship('ContatoFornecedor', backref='fornecedor', cascade='all, delete-orphan')

    def para_dict(self):
        return {
            'id': self.id,
            'nome_fantasia': self.nome_fantasia,
            'razao_social': self.razao_social,
            'cnpj': self.cnpj,
            'cnpj_formatado': formatar_cnpj(self.cnpj) if self.cnpj else None,
            'categoria': self.categoria,
            'descricao': self.descricao,
            'logo': self.logo,
            'observacoes': self.observacoes,
            'ativo': self.ativo,
            'verificado': self.verificado,
            'media_avaliacao': self.media_avaliacao or 0,
            'total_avaliacoes': self.total_avaliacoes or 0,
            'contatos': [c.para_dict() for c in self.contatos],
            'criado_em': _iso(self.criado_em),
        }


class ContatoFornecedor(db.Model):
    __tablename__ = 'contatos_fornecedor'
    id = db.Column(db.Integer, primary_key=True)
    fornecedor_id = db.Column(db.Integer, db.ForeignKey('fornecedores.id'), nullable=False)
    tipo = db.Column(db.String(20), nullable=False)  # phone, email, whatsapp, website
    valor = db.Column(db.String(255), nullable=False)
    rotulo = db.Column(db.String(80))

    def para_dict(self):
        return {'id': self.id, 'tipo': self.tipo, 'valor': self.valor, 'rotulo': self.rotulo}


class Parceiro(db.Model):
    __tablename__ = 'parceiros'
    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(120), nullable=False)
    telefone = db.Column(db.String(20), nullable=False)
    especialidades = db.Column(db.Text)
    descricao = db.Column(db.Text)
    servicos = db.Column(db.Text)
    endereco = db.Column(db.JSON)
    website = db.Column(db.String(255))
    instagram = db.Column(db.String(255))
    linkedin = db.Column(db.String(255))
    logo = db.Column(db.String(255))
    ativo = db.Column(db.Boolean, default=True)
    verificado = db.Column(db.Boolean, default=False)
    media_avaliacao = db.Column(db.Float, default=0)
    total_avaliacoes = db.Column(db.Integer, default=0)
    criado_em = db.Column(db.DateTime, default=datetime.now)
    contatos = db.relationship('ContatoParceiro', backref='parceiro', cascade='all, delete-orphan')

    def para_dict(self):
        return {
            'id': self.id,
            'nome': self.nome,
            'email': self.email,
            'telefone': self.telefone,
            'telefone_formatado': formatar_telefone(self.telefone),
            'especialidades': self.especialidades,
            'descricao': self.descricao,
            'servicos': self.servicos,
            'endereco': self.endereco,
            'website': self.website,
            'instagram': self.instagram,
            'linkedin': self.linkedin,
            'logo': self.logo,
            'ativo': self.ativo,
            'verificado': self.verificado,
            'media_avaliacao': self.media_avaliacao or 0,
            'total_avaliacoes': self.total_avaliacoes or 0,
            'contatos': [c.para_dict() for c in self.contatos],
            'criado_em': _iso(self.criado_em),
        }


class ContatoParceiro(db.Model):
    __tablename__ = 'contatos_parceiro'
    id = db.Column(db.Integer, primary_key=True)
    parceiro_id = db.Column(db.Integer, db.ForeignKey('parceiros.id'), nullable=False)
    tipo = db.Column(db.String(20), nullable=False)
    valor = db.Column(db.String(255), nullable=False)
    rotulo = db.Column(db.String(80))

    def para_dict(self):
        return {'id': self.id, 'tipo': self.tipo, 'valor': self.valor, 'rotulo': self.rotulo}


class Ferramenta(db.Model):
    __tablename__ = 'ferramentas'
    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(150), nullable=False)
    descricao = db.Column(db.Text, nullable=False)
    tipo = db.Column(db.String(80))
    logo = db.Column(db.String(255))
    website = db.Column(db.String(255))
    preco = db.Column(db.String(120))
    recursos = db.Column(db.JSON, default=list)
    pros = db.Column(db.JSON, default=list)
    contras = db.Column(db.JSON, default=list)
    suporte_brasil = db.Column(db.String(20), default='funciona')  # funciona, parcial, nao
    ativo = db.Column(db.Boolean, default=True)
    verificado = db.Column(db.Boolean, default=False)
    media_avaliacao = db.Column(db.Float, default=0)
    total_avaliacoes = db.Column(db.Integer, default=0)
    criado_em = db.Column(db.DateTime, default=datetime.now)

    def para_dict(self):
        return {
            'id': self.id,
            'nome': self.nome,
            'descricao': self.descricao,
            'tipo': self.tipo,
            'logo': self.logo,
            'website': self.website,
            'preco': self.preco,
            'recursos': self.recursos or [],
            'pros': self.pros or [],
            'contras': self.contras or [],
            'suporte_brasil': self.suporte_brasil,
            'ativo': self.ativo,
            'verificado': self.verificado,
            'media_avaliacao': self.media_avaliacao or 0,
            'total_avaliacoes': self.total_avaliacoes or 0,
            'criado_em': _iso(self.criado_em),
        }


class Avaliacao(db.Model):
    __tablename__ = 'avaliacoes'
    id = db.Column(db.Integer, primary_key=True)
    alvo_tipo = db.Column(db.String(20), nullable=False)  # fornecedor, parceiro, ferramenta
    alvo_id = db.Column(db.Integer, nullable=False, index=True)
    usuario_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=False)
    nota = db.Column(db.Integer, nullable=False)
    comentario = db.Column(db.Text, nullable=False)
    aprovada = db.Column(db.Boolean, default=False)
    criado_em = db.Column(db.DateTime, default=datetime.now)
    usuario = db.relationship('Usuario')

    def para_dict(self):
        return {
            'id': self.id,
            'alvo_tipo': self.alvo_tipo,
            'alvo_id': self.alvo_id,
            'usuario_id': self.usuario_id,
            'usuario': (self.usuario.nome or self.usuario.username) if self.usuario else None,
            'nota': self.nota,
            'comentario': self.comentario,
            'aprovada': self.aprovada,
            'criado_em': _iso(self.criado_em),
        }


ALVOS_AVALIACAO = {
    'fornecedor': Fornecedor,
    'parceiro': Parceiro,
    'ferramenta': Ferramenta,
}


def recalcular_avaliacoes(alvo_tipo, alvo_id):
    """Atualiza média (1 casa) e total do alvo com base nas avaliações aprovadas."""
    modelo = ALVOS_AVALIACAO[alvo_tipo]
    alvo = db.session.get(modelo, alvo_id)
    if not alvo:
        return None
    notas = [a.nota for a in Avaliacao.query.filter_by(
        alvo_tipo=alvo_tipo, alvo_id=alvo_id, aprovada=True).all()]
    alvo.total_avaliacoes = len(notas)
    alvo.media_avaliacao = round(sum(notas) / len(notas), 1) if notas else 0
    return alvo


# ==============================================================================
# CATÁLOGO: CAIXAS, PRODUTOS E CANAIS
# ==============================================================================
class Caixa(db.Model):
    __tablename__ = 'caixas'
    id = db.Column(db.Integer, primary_key=True)
    codigo = db.Column(db.String(50), nullable=False)
    comprimento = db.Column(db.Float, nullable=False)
    largura = db.Column(db.Float, nullable=False)
    altura = db.Column(db.Float, nullable=False)
    tipo_onda = db.Column(db.String(20))  # simples, dupla
    papel = db.Column(db.String(20))  # TT, KRAFT, REC
    tem_logo = db.Column(db.Boolean, default=False)
    custo_unitario = db.Column(db.Float, default=0)
    ideal_para = db.Column(db.String(200))
    status = db.Column(db.String(20), default='ativa')
    peso = db.Column(db.Float, default=0)
    moq = db.Column(db.Integer)
    observacoes = db.Column(db.Text)
    criado_em = db.Column(db.DateTime, default=datetime.now)
    loja_id = db.Column(db.Integer, db.ForeignKey('lojas.id'))

    @property
    def ativo(self):
        return self.status == 'ativa'

    @ativo.setter
    def ativo(self, valor):
        self.status = 'ativa' if valor else 'inativa'

    @property
    def dimensoes(self):
        return f"{self.comprimento:g}x{self.largura:g}x{self.altura:g}"

    def para_dict(self):
        return {
            'id': self.id,
            'codigo': self.codigo,
            'comprimento': self.comprimento,
            'largura': self.largura,
            'altura': self.altura,
            'dimensoes': self.dimensoes,
            'tipo_onda': self.tipo_onda,
            'papel': self.papel,
            'tem_logo': self.tem_logo,
            'custo_unitario': self.custo_unitario or 0,
            'ideal_para': self.ideal_para,
            'status': self.status,
            'peso': self.peso,
            'moq': self.moq,
            'observacoes': self.observacoes,
            'loja_id': self.loja_id,
        }


class Produto(db.Model):
    __tablename__ = 'produtos'
    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(200), nullable=False)
    foto = db.Column(db.String(255))
    sku = db.Column(db.String(80))
    codigo_interno = db.Column(db.String(80))
    ean = db.Column(db.String(20))
    dimensoes = db.Column(db.JSON)
    peso = db.Column(db.Float)
    marca = db.Column(db.String(100))
    categoria = db.Column(db.String(100))
    ncm = db.Column(db.String(20))
    custo_item = db.Column(db.Float, default=0)
    custo_embalagem = db.Column(db.Float)
    imposto_percentual = db.Column(db.Float, default=0)
    observacoes = db.Column(db.Text)
    descricoes = db.Column(db.JSON)
    ativo = db.Column(db.Boolean, default=True)
    criado_em = db.Column(db.DateTime, default=datetime.now)
    atualizado_em = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)
    fornecedor_id = db.Column(db.Integer, db.ForeignKey('fornecedores.id'))
    caixa_id = db.Column(db.Integer, db.ForeignKey('caixas.id'))
    loja_id = db.Column(db.Integer, db.ForeignKey('lojas.id'))
    fornecedor = db.relationship('Fornecedor')
    caixa = db.relationship('Caixa')
    canais = db.relationship('CanalProduto', backref='produto', cascade='all, delete-orphan')

    @property
    def custo_embalagem_efetivo(self):
        if self.custo_embalagem:
            return self.custo_embalagem
        if self.caixa:
            return self.caixa.custo_unitario or 0
        return 0

    def para_dict(self):
        return {
            'id': self.id,
            'nome': self.nome,
            'foto': self.foto,
            'sku': self.sku,
            'codigo_interno': self.codigo_interno,
            'ean': self.ean,
            'dimensoes': self.dimensoes,
            'peso': self.peso,
            'marca': self.marca,
            'categoria': self.categoria,
            'ncm': self.ncm,
            'custo_item': self.custo_item or 0,
            'custo_embalagem': self.custo_embalagem,
            'custo_embalagem_efetivo': self.custo_embalagem_efetivo,
            'imposto_percentual': self.imposto_percentual or 0,
            'observacoes': self.observacoes,
            'descricoes': self.descricoes,
            'ativo': self.ativo,
            'fornecedor_id': self.fornecedor_id,
            'fornecedor': self.fornecedor.nome_fantasia if self.fornecedor else None,
            'caixa_id': self.caixa_id,
            'loja_id': self.loja_id,
            'canais': [c.para_dict() for c in self.canais],
            'criado_em': _iso(self.criado_em),
            'atualizado_em': _iso(self.atualizado_em),
        }


class CanalProduto(db.Model):
    __tablename__ = 'canais_produto'
    __table_args__ = (db.UniqueConstraint('produto_id', 'tipo_canal', name='uq_produto_canal'),)
    id = db.Column(db.Integer, primary_key=True)
    produto_id = db.Column(db.Integer, db.ForeignKey('produtos.id'), nullable=False)
    tipo_canal = db.Column(db.String(30), nullable=False)
    ativo = db.Column(db.Boolean, default=True)
    preco_venda = db.Column(db.Float, default=0)
    custos = db.Column(db.JSON, default=dict)
    ultimo_calculo = db.Column(db.JSON)

    def para_dict(self):
        return {
            'id': self.id,
            'tipo_canal': self.tipo_canal,
            'ativo': self.ativo,
            'preco_venda': self.preco_venda or 0,
            'custos': self.custos or {},
            'ultimo_calculo': self.ultimo_calculo,
        }


# ==============================================================================
# CRÉDITOS, ASSINATURAS E COBRANÇA
# ==============================================================================
class TransacaoCredito(db.Model):
    __tablename__ = 'transacoes_credito'
    id = db.Column(db.Integer, primary_key=True)
    usuario_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=False)
    quantidade = db.Column(db.Integer, nullable=False)
    tipo = db.Column(db.String(20), nullable=False)  # compra, assinatura, uso, ajuste
    descricao = db.Column(db.String(255))
    referencia = db.Column(db.String(120))
    saldo_apos = db.Column(db.Integer, nullable=False)
    criado_em = db.Column(db.DateTime, default=datetime.now)

    def para_dict(self):
        return {
            'id': self.id,
            'quantidade': self.quantidade,
            'tipo': self.tipo,
            'descricao': self.descricao,
            'referencia': self.referencia,
            'saldo_apos': self.saldo_apos,
            'criado_em': _iso(self.criado_em),
        }


class Assinatura(db.Model):
    __tablename__ = 'assinaturas'
    id = db.Column(db.Integer, primary_key=True)
    usuario_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=False)
    stripe_subscription_id = db.Column(db.String(100), unique=True, nullable=False)
    stripe_customer_id = db.Column(db.String(100))
    plano = db.Column(db.String(30))
    status = db.Column(db.String(30), default='incompleta')
    ciclo = db.Column(db.String(20), default='mensal')
    creditos_mensais = db.Column(db.Integer, default=0)
    inicio = db.Column(db.DateTime)
    proxima_cobranca = db.Column(db.DateTime)
    cancelar_no_fim = db.Column(db.Boolean, default=False)
    cancelada_em = db.Column(db.DateTime)
    criado_em = db.Column(db.DateTime, default=datetime.now)
    atualizado_em = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)
    usuario = db.relationship('Usuario')

    def para_dict(self):
        return {
            'id': self.id,
            'plano': self.plano,
            'status': self.status,
            'ciclo': self.ciclo,
            'creditos_mensais': self.creditos_mensais,
            'inicio': _iso(self.inicio),
            'proxima_cobranca': _iso(self.proxima_cobranca),
            'cancelar_no_fim': self.cancelar_no_fim,
            'cancelada_em': _iso(self.cancelada_em),
        }


class HistoricoCobranca(db.Model):
    __tablename__ = 'historico_cobranca'
    id = db.Column(db.Integer, primary_key=True)
    usuario_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'))
    referencia = db.Column(db.String(120))
    valor = db.Column(db.Float, default=0)
    moeda = db.Column(db.String(10), default='brl')
    status = db.Column(db.String(30))
    tipo = db.Column(db.String(30))  # creditos, assinatura, fatura
    descricao = db.Column(db.String(255))
    criado_em = db.Column(db.DateTime, default=datetime.now)

    def para_dict(self):
        return {
            'id': self.id,
            'referencia': self.referencia,
            'valor': self.valor,
            'valor_formatado': moeda(self.valor),
            'moeda': self.moeda,
            'status': self.status,
            'tipo': self.tipo,
            'descricao': self.descricao,
            'criado_em': _iso(self.criado_em),
        }


class EventoWebhook(db.Model):
    __tablename__ = 'eventos_webhook'
    id = db.Column(db.String(100), primary_key=True)
    tipo = db.Column(db.String(80), nullable=False)
    processado = db.Column(db.Boolean, default=False)
    processado_em = db.Column(db.DateTime)
    erro = db.Column(db.Text)
    recebido_em = db.Column(db.DateTime, default=datetime.now)

    def para_dict(self):
        return {
            'id': self.id,
            'tipo': self.tipo,
            'processado': self.processado,
            'processado_em': _iso(self.processado_em),
            'erro': self.erro,
            'recebido_em': _iso(self.recebido_em),
        }


# ==============================================================================
# CONTEÚDO
# ==============================================================================
class Noticia(db.Model):
    __tablename__ = 'noticias'
    id = db.Column(db.Integer, primary_key=True)
    titulo = db.Column(db.String(200), nullable=False)
    resumo = db.Column(db.Text)
    conteudo = db.Column(db.Text, nullable=False)
    categoria = db.Column(db.String(80))
    tags = db.Column(db.JSON, default=list)
    publicada = db.Column(db.Boolean, default=False)
    destaque = db.Column(db.Boolean, default=False)
    autor_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'))
    criado_em = db.Column(db.DateTime, default=datetime.now)
    atualizado_em = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    @property
    def ativo(self):
        return self.publicada

    @ativo.setter
    def ativo(self, valor):
        self.publicada = bool(valor)

    def para_previa(self):
        return {
            'id': self.id,
            'titulo': self.titulo,
            'resumo': self.resumo,
            'categoria': self.categoria,
            'destaque': self.destaque,
            'criado_em': _iso(self.criado_em),
            'data': data_br(self.criado_em),
        }

    def para_dict(self):
        dados = self.para_previa()
        dados.update({
            'conteudo': self.conteudo,
            'tags': self.tags or [],
            'publicada': self.publicada,
            'autor_id': self.autor_id,
            'atualizado_em': _iso(self.atualizado_em),
        })
        return dados
