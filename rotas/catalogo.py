import logging

from flask import Blueprint, g, jsonify, request

from crud import GerenciadorCrud
from erros import ErroValidacao
from esquemas import (CaixaEntrada, CalculoCanalEntrada, CanaisEntrada, PrecoAlvoEntrada,
                      ProdutoEntrada, SimulacaoEntrada)
from modelos import Caixa, CanalProduto, Fornecedor, Produto, db
from precificacao import MotorPrecificacao
from seguranca import login_required, obter_da_loja, registrar_auditoria

logger = logging.getLogger(__name__)

catalogo_bp = Blueprint('catalogo', __name__, url_prefix='/api')


# ==============================================================================
# PRODUTOS E CAIXAS
# ==============================================================================
def _validar_referencias_produto(produto, dados):
    if dados.get('fornecedor_id') and not db.session.get(Fornecedor, dados['fornecedor_id']):
        raise ErroValidacao("Fornecedor não encontrado")
    if dados.get('caixa_id'):
        caixa = db.session.get(Caixa, dados['caixa_id'])
        loja_id = produto.loja_id or g.usuario.loja_id
        if not caixa or (caixa.loja_id != loja_id and not g.usuario.is_super_admin):
            raise ErroValidacao("Caixa não encontrada")


produtos = GerenciadorCrud(
    Produto, ProdutoEntrada, 'produtos',
    campos_busca=('nome', 'sku', 'ean', 'codigo_interno', 'marca'),
    filtros=('ativo', 'categoria', 'marca', 'fornecedor_id', 'caixa_id'),
    colunas_csv=['id', 'nome', 'sku', 'codigo_interno', 'ean', 'marca', 'categoria', 'ncm', 'peso',
                 'dimensoes', 'custo_item', 'custo_embalagem', 'imposto_percentual', 'fornecedor_id',
                 'caixa_id', 'ativo', 'observacoes'],
    antes_salvar=_validar_referencias_produto,
).registrar(catalogo_bp, '/produtos')

caixas = GerenciadorCrud(
    Caixa, CaixaEntrada, 'caixas',
    campos_busca=('codigo', 'ideal_para', 'observacoes'),
    filtros=('status', 'tipo_onda', 'papel', 'tem_logo'),
    colunas_csv=['id', 'codigo', 'comprimento', 'largura', 'altura', 'tipo_onda', 'papel', 'tem_logo',
                 'custo_unitario', 'ideal_para', 'status', 'peso', 'moq', 'observacoes'],
    ordenacao_padrao='codigo',
).registrar(catalogo_bp, '/caixas')


# ==============================================================================
# CANAIS DE VENDA DO PRODUTO
# ==============================================================================
@catalogo_bp.route('/produtos/<int:produto_id>/canais', methods=['GET'])
@login_required
def listar_canais_produto(produto_id):
    produto = obter_da_loja(Produto, produto_id)
    return jsonify({
        'produto_id': produto.id,
        'canais': [c.para_dict() for c in produto.canais],
        'disponiveis': MotorPrecificacao.listar_canais(),
    })


@catalogo_bp.route('/produtos/<int:produto_id>/canais', methods=['PUT'])
@login_required
def salvar_canais_produto(produto_id):
    produto = obter_da_loja(Produto, produto_id)
    entrada = CanaisEntrada.model_validate(request.get_json(silent=True) or {})
    existentes = {c.tipo_canal: c for c in produto.canais}

    try:
        for dados in entrada.canais:
            canal = existentes.get(dados.tipo_canal)
            if not canal:
                canal = CanalProduto(tipo_canal=dados.tipo_canal)
                produto.canais.append(canal)
                existentes[dados.tipo_canal] = canal
            canal.ativo = dados.ativo
            canal.preco_venda = dados.preco_venda
            canal.custos = dados.custos
        db.session.flush()
        resultado = MotorPrecificacao.processar_produto(produto)
        registrar_auditoria('EDITOU', 'canais_produto', produto.id,
                            detalhes=', '.join(sorted(c.tipo_canal for c in entrada.canais)))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(resultado)


@catalogo_bp.route('/produtos/<int:produto_id>/precificacao')
@login_required
def precificacao_produto(produto_id):
    produto = obter_da_loja(Produto, produto_id)
    try:
        resultado = MotorPrecificacao.processar_produto(produto)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(resultado)


# ==============================================================================
# SIMULADORES DE PREÇO
# ==============================================================================
@catalogo_bp.route('/precificacao/canais')
@login_required
def canais_disponiveis():
    return jsonify(MotorPrecificacao.listar_canais())


@catalogo_bp.route('/precificacao/simular', methods=['POST'])
@login_required
def simular():
    dados = SimulacaoEntrada.model_validate(request.get_json(silent=True) or {})
    return jsonify(MotorPrecificacao.simular_preco(dados.preco_venda, dados.custo_total))


@catalogo_bp.route('/precificacao/canal', methods=['POST'])
@login_required
def calcular_canal():
    dados = CalculoCanalEntrada.model_validate(request.get_json(silent=True) or {})
    return jsonify(MotorPrecificacao.calcular_canal(dados.tipo_canal, dados.entrada))


@catalogo_bp.route('/precificacao/preco-alvo', methods=['POST'])
@login_required
def preco_alvo():
    dados = PrecoAlvoEntrada.model_validate(request.get_json(silent=True) or {})
    return jsonify(MotorPrecificacao.preco_para_margem(dados.tipo_canal, dados.margem_alvo, dados.entrada))
