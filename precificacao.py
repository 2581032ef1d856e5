"""Precificação por canal de venda.

Os custos percentuais (comissão, ads, outros e imposto) incidem sobre o preço
de venda; os custos unitários somam o custo do produto, a embalagem e os
campos de valor fixo do canal. Rebate e receita extra do ML Flex entram como
receita, não como desconto de custo.
"""
from erros import ErroValidacao
from formatadores import moeda, parse_valor, percentual

CAMPOS_COMUNS = ['comissao_pct', 'ads_pct', 'outros_pct', 'outros_valor', 'imposto_pct',
                 'rebate_pct', 'rebate_valor']

CANAIS = {
    'site': {
        'nome': 'Site Próprio',
        'descricao': 'Loja virtual própria',
        'comissao_padrao': 0,
        'campos': [],
    },
    'amazon_fbm': {
        'nome': 'Amazon FBM',
        'descricao': 'Amazon com envio pelo vendedor',
        'comissao_padrao': 15,
        'campos': ['frete_saida'],
    },
    'amazon_fba_onsite': {
        'nome': 'Amazon FBA On-Site',
        'descricao': 'Amazon FBA com estoque no vendedor',
        'comissao_padrao': 15,
        'campos': ['frete_entrada', 'prep_center', 'taxa_fixa'],
    },
    'amazon_dba': {
        'nome': 'Amazon DBA',
        'descricao': 'Amazon entrega pela Amazon',
        'comissao_padrao': 15,
        'campos': ['frete_entrada', 'frete_saida', 'prep_center', 'taxa_fixa'],
    },
    'amazon_fba': {
        'nome': 'Amazon FBA',
        'descricao': 'Logística da Amazon',
        'comissao_padrao': 15,
        'campos': ['frete_entrada', 'prep_center', 'taxa_fixa'],
    },
    'ml_me1': {
        'nome': 'Mercado Livre ME1',
        'descricao': 'Mercado Envios 1, frete por conta do vendedor',
        'comissao_padrao': 18,
        'campos': ['frete_saida'],
    },
    'ml_flex': {
        'nome': 'Mercado Livre Flex',
        'descricao': 'Entrega própria no mesmo dia',
        'comissao_padrao': 18,
        'campos': ['frete_entrada', 'prep_center', 'taxa_fixa', 'receita_ml_flex'],
    },
    'ml_envios': {
        'nome': 'Mercado Livre Envios',
        'descricao': 'Mercado Envios coleta',
        'comissao_padrao': 18,
        'campos': ['frete_entrada', 'prep_center', 'taxa_fixa'],
    },
    'ml_full': {
        'nome': 'Mercado Livre Full',
        'descricao': 'Fulfillment do Mercado Livre',
        'comissao_padrao': 18,
        'campos': ['frete_entrada', 'prep_center', 'taxa_fixa'],
    },
    'shopee': {
        'nome': 'Shopee',
        'descricao': 'Marketplace Shopee',
        'comissao_padrao': 20,
        'campos': ['frete_saida', 'taxa_fixa'],
    },
}

CAMPOS_COMISSAO_ESCALONADA = ['comissao_ate_valor', 'comissao_ate_pct', 'comissao_acima_pct',
                              'comissao_minima', 'comissao_maxima']

ROTULOS_FIXOS = [
    ('frete_entrada', 'Frete de Entrada'),
    ('frete_saida', 'Frete de Saída'),
    ('prep_center', 'Prep Center'),
    ('taxa_fixa', 'Taxa Fixa'),
]


def _rotulo_pct(valor):
    return f"{valor:g}".replace('.', ',') + '%'


def _r(valor):
    return round(valor, 2)


def _numero(valor):
    try:
        return parse_valor(valor)
    except ValueError as e:
        raise ErroValidacao(str(e))


class MotorPrecificacao:

    @staticmethod
    def config_canal(tipo):
        config = CANAIS.get(tipo)
        if not config:
            raise ErroValidacao(f"Canal desconhecido: {tipo}")
        return config

    @staticmethod
    def listar_canais():
        return [
            {'tipo': tipo, 'nome': c['nome'], 'descricao': c['descricao'],
             'comissao_padrao': c['comissao_padrao'],
             'campos': ['custo_item', 'custo_embalagem'] + c['campos'] + CAMPOS_COMUNS}
            for tipo, c in CANAIS.items()
        ]

    @staticmethod
    def normalizar_entrada(tipo, entrada):
        """Converte os valores para float e mantém só os campos que o canal usa."""
        config = MotorPrecificacao.config_canal(tipo)
        entrada = entrada or {}
        permitidos = ['preco', 'custo_item', 'custo_embalagem'] + config['campos'] + CAMPOS_COMUNS
        dados = {campo: _numero(entrada.get(campo)) for campo in permitidos}
        if entrada.get('comissao_pct') in (None, ''):
            dados['comissao_pct'] = float(config['comissao_padrao'])
        for campo in CAMPOS_COMISSAO_ESCALONADA:
            dados[campo] = _numero(entrada.get(campo))
        return dados

    @staticmethod
    def validar_entrada(dados):
        erros = []
        if not 0 <= dados.get('imposto_pct', 0) <= 100:
            erros.append("Imposto deve estar entre 0 e 100%")
        for campo in ('comissao_pct', 'comissao_ate_pct', 'comissao_acima_pct'):
            if not 0 <= dados.get(campo, 0) <= 50:
                erros.append("Comissão deve estar entre 0 e 50%")
                break
        for campo in ('ads_pct', 'outros_pct', 'rebate_pct'):
            if not 0 <= dados.get(campo, 0) <= 100:
                erros.append(f"Percentual inválido: {campo}")
        negativos = [c for c in ('custo_item', 'custo_embalagem', 'frete_entrada', 'frete_saida',
                                 'prep_center', 'taxa_fixa', 'outros_valor') if dados.get(c, 0) < 0]
        if negativos:
            erros.append(f"Valores não podem ser negativos: {', '.join(negativos)}")
        return erros

    @staticmethod
    def pct_comissao(preco, dados):
        """Percentual de comissão aplicável ao preço, considerando faixas."""
        if dados.get('comissao_ate_valor', 0) > 0:
            if preco <= dados['comissao_ate_valor']:
                return dados.get('comissao_ate_pct', 0)
            return dados.get('comissao_acima_pct', 0)
        return dados.get('comissao_pct', 0)

    @staticmethod
    def valor_comissao(preco, dados):
        valor = preco * MotorPrecificacao.pct_comissao(preco, dados) / 100
        if dados.get('comissao_minima', 0) > 0:
            valor = max(valor, dados['comissao_minima'])
        if dados.get('comissao_maxima', 0) > 0:
            valor = min(valor, dados['comissao_maxima'])
        return valor

    @staticmethod
    def detalhamento_custos(tipo, dados):
        """Lista ordenada de itens {rotulo, valor, rebate}. Itens zerados são omitidos.

        `rebate` marca itens que somam à receita (rebate e receita ML Flex).
        """
        preco = dados.get('preco', 0)
        itens = [
            ('Custo do Produto', dados.get('custo_item', 0), False),
            ('Embalagem', dados.get('custo_embalagem', 0), False),
        ]
        for campo, rotulo in ROTULOS_FIXOS:
            if campo in dados:
                itens.append((rotulo, dados[campo], False))

        pct_comissao = MotorPrecificacao.pct_comissao(preco, dados)
        itens.append((f"Comissão ({_rotulo_pct(pct_comissao)})",
                      MotorPrecificacao.valor_comissao(preco, dados), False))
        itens.append((f"Ads ({_rotulo_pct(dados.get('ads_pct', 0))})",
                      preco * dados.get('ads_pct', 0) / 100, False))
        itens.append((f"Outros ({_rotulo_pct(dados.get('outros_pct', 0))})",
                      preco * dados.get('outros_pct', 0) / 100, False))
        itens.append(("Outro Custo R$", dados.get('outros_valor', 0), False))
        itens.append((f"Impostos s/ Venda ({_rotulo_pct(dados.get('imposto_pct', 0))})",
                      preco * dados.get('imposto_pct', 0) / 100, False))

        if tipo == 'ml_flex':
            itens.append(("Receita ML Flex", dados.get('receita_ml_flex', 0), True))
        itens.append((f"Rebate ({_rotulo_pct(dados.get('rebate_pct', 0))})",
                      preco * dados.get('rebate_pct', 0) / 100, True))
        itens.append(("Rebate R$", dados.get('rebate_valor', 0), True))

        return [{'rotulo': rotulo, 'valor': _r(valor), 'rebate': rebate}
                for rotulo, valor, rebate in itens if valor]

    @staticmethod
    def calcular_canal(tipo, entrada):
        config = MotorPrecificacao.config_canal(tipo)
        dados = MotorPrecificacao.normalizar_entrada(tipo, entrada)
        erros = MotorPrecificacao.validar_entrada(dados)
        if erros:
            raise ErroValidacao("; ".join(erros), detalhes=erros)

        preco = dados['preco']
        resultado = {
            'tipo_canal': tipo,
            'nome_canal': config['nome'],
            'preco': _r(preco),
            'receita': 0.0,
            'custos_unitarios': 0.0,
            'custos_percentuais': 0.0,
            'custo_total': 0.0,
            'lucro': 0.0,
            'margem': 0.0,
            'roi': 0.0,
            'detalhamento': [],
        }
        if preco <= 0:
            return resultado

        unitarios = dados['custo_item'] + dados['custo_embalagem'] + dados['outros_valor']
        for campo, _ in ROTULOS_FIXOS:
            unitarios += dados.get(campo, 0)

        percentuais = (MotorPrecificacao.valor_comissao(preco, dados)
                       + preco * (dados['ads_pct'] + dados['outros_pct'] + dados['imposto_pct']) / 100)
        custo_total = unitarios + percentuais

        receita = preco + preco * dados['rebate_pct'] / 100 + dados['rebate_valor']
        if tipo == 'ml_flex':
            receita += dados.get('receita_ml_flex', 0)

        lucro = receita - custo_total
        resultado.update({
            'receita': _r(receita),
            'custos_unitarios': _r(unitarios),
            'custos_percentuais': _r(percentuais),
            'custo_total': _r(custo_total),
            'lucro': _r(lucro),
            'margem': _r(lucro / receita * 100) if receita > 0 else 0.0,
            'roi': _r(lucro / custo_total * 100) if custo_total > 0 else 0.0,
            'detalhamento': MotorPrecificacao.detalhamento_custos(tipo, dados),
        })
        resultado['formatado'] = {
            'receita': moeda(resultado['receita']),
            'custo_total': moeda(resultado['custo_total']),
            'lucro': moeda(resultado['lucro']),
            'margem': percentual(resultado['margem']),
            'roi': percentual(resultado['roi']),
        }
        return resultado

    @staticmethod
    def calcular_todos(canais, base=None):
        """Calcula todos os canais ativos. `base` traz os custos do produto."""
        resultados = []
        for canal in canais:
            if not canal.get('ativo', True):
                continue
            entrada = dict(canal.get('custos') or {})
            entrada.update(base or {})
            entrada['preco'] = canal.get('preco_venda', entrada.get('preco'))
            resultados.append(MotorPrecificacao.calcular_canal(canal['tipo_canal'], entrada))
        return resultados

    @staticmethod
    def preco_para_margem(tipo, margem_alvo, entrada):
        """Preço de venda que entrega a margem alvo (em %) no canal.

        Sendo U os custos unitários, p a soma dos percentuais sobre o preço,
        r o rebate percentual e F as receitas fixas (ML Flex e rebate em R$):
        P = (U - F(1-m)) / ((1+r)(1-m) - p)
        """
        dados = MotorPrecificacao.normalizar_entrada(tipo, entrada)
        m = _numero(margem_alvo) / 100
        if m >= 1:
            raise ErroValidacao("Margem alvo deve ser menor que 100%")

        unitarios = dados['custo_item'] + dados['custo_embalagem'] + dados['outros_valor']
        for campo, _ in ROTULOS_FIXOS:
            unitarios += dados.get(campo, 0)
        receitas_fixas = dados['rebate_valor'] + (dados.get('receita_ml_flex', 0) if tipo == 'ml_flex' else 0)
        r = dados['rebate_pct'] / 100
        outros_pct = dados['ads_pct'] + dados['outros_pct'] + dados['imposto_pct']

        def forma_fechada(pct_sobre_preco, custo_extra):
            denominador = (1 + r) * (1 - m) - pct_sobre_preco / 100
            if denominador <= 0:
                return None
            preco = (unitarios + custo_extra - receitas_fixas * (1 - m)) / denominador
            return preco if preco > 0 else None

        def resolver(pct_comissao):
            # comissão mínima/máxima vira custo fixo quando limita o percentual
            minima, maxima = dados['comissao_minima'], dados['comissao_maxima']
            preco = forma_fechada(pct_comissao + outros_pct, 0)
            if preco is not None:
                comissao = preco * pct_comissao / 100
                if minima > 0 and comissao < minima:
                    return forma_fechada(outros_pct, minima)
                if maxima > 0 and comissao > maxima:
                    return forma_fechada(outros_pct, maxima)
                return preco
            if maxima > 0:
                preco = forma_fechada(outros_pct, maxima)
                if preco is not None and preco * pct_comissao / 100 >= maxima:
                    return preco
            return None

        preco = None
        if dados['comissao_ate_valor'] > 0:
            candidato = resolver(dados['comissao_ate_pct'])
            if candidato is not None and candidato <= dados['comissao_ate_valor']:
                preco = candidato
            else:
                preco = resolver(dados['comissao_acima_pct'])
        else:
            preco = resolver(dados['comissao_pct'])

        if preco is None:
            raise ErroValidacao("Margem alvo inatingível com os percentuais informados")

        entrada_final = dict(entrada or {})
        entrada_final['preco'] = round(preco, 2)
        resultado = MotorPrecificacao.calcular_canal(tipo, entrada_final)
        resultado['margem_alvo'] = _r(m * 100)
        return resultado

    @staticmethod
    def simular_preco(preco_venda, custo_total):
        preco_venda = _numero(preco_venda)
        custo_total = _numero(custo_total)
        lucro = preco_venda - custo_total
        return {
            'preco_venda': _r(preco_venda),
            'custo_total': _r(custo_total),
            'lucro': _r(lucro),
            'margem': _r(lucro / preco_venda * 100) if preco_venda > 0 else 0.0,
            'roi': _r(lucro / custo_total * 100) if custo_total > 0 else 0.0,
        }

    @staticmethod
    def base_produto(produto):
        return {
            'custo_item': produto.custo_item or 0,
            'custo_embalagem': produto.custo_embalagem_efetivo,
            'imposto_pct': produto.imposto_percentual or 0,
        }

    @staticmethod
    def processar_produto(produto):
        """Resultado de todos os canais ativos do produto e o canal mais lucrativo.

        Grava o último cálculo em cada canal; o commit fica a cargo de quem chama.
        """
        base = MotorPrecificacao.base_produto(produto)
        canais = []
        for canal in produto.canais:
            if not canal.ativo:
                continue
            entrada = dict(canal.custos or {})
            entrada.update(base)
            entrada['preco'] = canal.preco_venda or 0
            resultado = MotorPrecificacao.calcular_canal(canal.tipo_canal, entrada)
            canal.ultimo_calculo = resultado
            canais.append(resultado)

        melhor = max(canais, key=lambda c: c['lucro']) if canais else None
        return {
            'produto_id': produto.id,
            'produto': produto.nome,
            'base': base,
            'canais': canais,
            'melhor_canal': melhor['tipo_canal'] if melhor else None,
        }
