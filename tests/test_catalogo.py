import pytest

from modelos import CanalProduto, LogAuditoria, Produto, db


def criar_produto(client, headers, **campos):
    dados = {'nome': 'Panela Inox 22', 'sku': 'PAN-22', 'custo_item': 40, 'imposto_percentual': 10}
    dados.update(campos)
    r = client.post('/api/produtos', json=dados, headers=headers)
    assert r.status_code == 201, r.get_json()
    return r.get_json()


def criar_caixa(client, headers, **campos):
    dados = {'codigo': '121', 'comprimento': 110, 'largura': 110, 'altura': 240,
             'tipo_onda': 'dupla', 'papel': 'tt', 'custo_unitario': 1.35}
    dados.update(campos)
    r = client.post('/api/caixas', json=dados, headers=headers)
    assert r.status_code == 201, r.get_json()
    return r.get_json()


def test_produtos_exigem_login(client):
    assert client.get('/api/produtos').status_code == 401


def test_criar_e_obter_produto(app, client, auth):
    produto = criar_produto(client, auth)
    assert produto['nome'] == 'Panela Inox 22'
    assert produto['loja_id'] is not None

    r = client.get(f"/api/produtos/{produto['id']}", headers=auth)
    assert r.status_code == 200
    assert r.get_json()['sku'] == 'PAN-22'

    with app.app_context():
        assert LogAuditoria.query.filter_by(acao='CRIOU', recurso='produtos').count() == 1


def test_criar_produto_invalido(client, auth):
    r = client.post('/api/produtos', json={'nome': '   ', 'peso': 2000}, headers=auth)
    assert r.status_code == 400
    detalhes = ' '.join(r.get_json()['detalhes'])
    assert 'nome' in detalhes
    assert 'peso' in detalhes


def test_listagem_com_busca_filtro_e_paginacao(client, auth):
    for i in range(25):
        criar_produto(client, auth, nome=f'Produto {i:02d}', sku=f'SKU{i}', marca='Tramontina' if i % 2 else 'Wolff')

    r = client.get('/api/produtos?por_pagina=10&pagina=3', headers=auth)
    dados = r.get_json()
    assert dados['total'] == 25
    assert dados['paginas'] == 3
    assert len(dados['itens']) == 5

    r = client.get('/api/produtos', query_string={'busca': 'produto 1'}, headers=auth)
    assert r.get_json()['total'] == 10

    r = client.get('/api/produtos?marca=Wolff', headers=auth)
    assert r.get_json()['total'] == 13

    r = client.get('/api/produtos?ordenar=nome&direcao=desc&por_pagina=1', headers=auth)
    assert r.get_json()['itens'][0]['nome'] == 'Produto 24'


def test_ordenacao_invalida(client, auth):
    r = client.get('/api/produtos?ordenar=senha', headers=auth)
    assert r.status_code == 400


def test_filtro_booleano(client, auth):
    criar_produto(client, auth, nome='Ativo')
    criar_produto(client, auth, nome='Inativo', ativo=False)
    r = client.get('/api/produtos?ativo=false', headers=auth)
    assert [p['nome'] for p in r.get_json()['itens']] == ['Inativo']


def test_atualizacao_parcial(client, auth):
    produto = criar_produto(client, auth, marca='Wolff')
    r = client.put(f"/api/produtos/{produto['id']}", json={'custo_item': 55.5}, headers=auth)
    assert r.status_code == 200
    dados = r.get_json()
    assert dados['custo_item'] == 55.5
    assert dados['marca'] == 'Wolff'
    assert dados['nome'] == 'Panela Inox 22'


def test_excluir_produto(app, client, auth):
    produto = criar_produto(client, auth)
    r = client.delete(f"/api/produtos/{produto['id']}", headers=auth)
    assert r.status_code == 200
    assert client.get(f"/api/produtos/{produto['id']}", headers=auth).status_code == 404


def test_isolamento_entre_lojas(client, auth, auth_outro):
    produto = criar_produto(client, auth)
    assert client.get(f"/api/produtos/{produto['id']}", headers=auth_outro).status_code == 404
    assert client.put(f"/api/produtos/{produto['id']}", json={'nome': 'X'}, headers=auth_outro).status_code == 404
    assert client.delete(f"/api/produtos/{produto['id']}", headers=auth_outro).status_code == 404
    assert client.get('/api/produtos', headers=auth_outro).get_json()['total'] == 0


def test_super_admin_ve_todas_as_lojas(client, auth, auth_outro, auth_super):
    criar_produto(client, auth)
    criar_produto(client, auth_outro)
    assert client.get('/api/produtos', headers=auth_super).get_json()['total'] == 2


def test_acao_em_lote(client, auth, auth_outro):
    a = criar_produto(client, auth, nome='A')
    b = criar_produto(client, auth, nome='B')
    de_outra_loja = criar_produto(client, auth_outro, nome='C')

    r = client.post('/api/produtos/lote', headers=auth,
                    json={'acao': 'desativar', 'ids': [a['id'], b['id'], de_outra_loja['id']]})
    dados = r.get_json()
    assert dados['afetados'] == 2
    assert dados['nao_encontrados'] == [de_outra_loja['id']]
    assert client.get(f"/api/produtos/{a['id']}", headers=auth).get_json()['ativo'] is False

    r = client.post('/api/produtos/lote', headers=auth, json={'acao': 'excluir', 'ids': [a['id']]})
    assert r.get_json()['afetados'] == 1
    assert client.get('/api/produtos', headers=auth).get_json()['total'] == 1


def test_lote_acao_invalida(client, auth):
    r = client.post('/api/produtos/lote', headers=auth, json={'acao': 'arquivar', 'ids': [1]})
    assert r.status_code == 400
    r = client.post('/api/produtos/lote', headers=auth, json={'acao': 'excluir', 'ids': []})
    assert r.status_code == 400


def test_produto_com_caixa_de_outra_loja(client, auth, auth_outro):
    caixa = criar_caixa(client, auth_outro)
    r = client.post('/api/produtos', headers=auth, json={'nome': 'Panela', 'caixa_id': caixa['id']})
    assert r.status_code == 400
    assert r.get_json()['erro'] == 'Caixa não encontrada'


def test_caixas_padronizam_onda_e_ordenam_por_codigo(client, auth):
    criar_caixa(client, auth, codigo='98')
    criar_caixa(client, auth, codigo='121')
    caixa = criar_caixa(client, auth, codigo='151 TABULEIRO', altura=0)
    assert caixa['tipo_onda'] == 'DUPLA'
    assert caixa['papel'] == 'TT'
    assert caixa['dimensoes'] == '110x110x0'

    itens = client.get('/api/caixas', headers=auth).get_json()['itens']
    assert [c['codigo'] for c in itens] == ['121', '151 TABULEIRO', '98']


def test_lote_desativa_caixas(client, auth):
    caixa = criar_caixa(client, auth)
    client.post('/api/caixas/lote', headers=auth, json={'acao': 'desativar', 'ids': [caixa['id']]})
    r = client.get('/api/caixas?status=inativa', headers=auth)
    assert r.get_json()['total'] == 1


def test_custo_da_caixa_vira_embalagem_do_produto(client, auth):
    caixa = criar_caixa(client, auth, custo_unitario=2.5)
    produto = criar_produto(client, auth, caixa_id=caixa['id'])
    assert produto['custo_embalagem_efetivo'] == 2.5


def test_salvar_canais_calcula_precificacao(app, client, auth):
    produto = criar_produto(client, auth, custo_item=40, custo_embalagem=5, imposto_percentual=10)
    r = client.put(f"/api/produtos/{produto['id']}/canais", headers=auth, json={'canais': [
        {'tipo_canal': 'site', 'preco_venda': 100},
        {'tipo_canal': 'shopee', 'preco_venda': 100, 'custos': {'frete_saida': 5}},
        {'tipo_canal': 'ml_full', 'preco_venda': 100, 'ativo': False},
    ]})
    assert r.status_code == 200
    dados = r.get_json()
    assert [c['tipo_canal'] for c in dados['canais']] == ['site', 'shopee']
    assert dados['melhor_canal'] == 'site'
    assert dados['canais'][0]['lucro'] == 45

    with app.app_context():
        canais = CanalProduto.query.filter_by(produto_id=produto['id']).all()
        assert len(canais) == 3
        site = next(c for c in canais if c.tipo_canal == 'site')
        assert site.ultimo_calculo['lucro'] == 45

    r = client.put(f"/api/produtos/{produto['id']}/canais", headers=auth, json={'canais': [
        {'tipo_canal': 'site', 'preco_venda': 120},
    ]})
    assert r.status_code == 200
    with app.app_context():
        assert CanalProduto.query.filter_by(produto_id=produto['id']).count() == 3


def test_canal_desconhecido_rejeitado(client, auth):
    produto = criar_produto(client, auth)
    r = client.put(f"/api/produtos/{produto['id']}/canais", headers=auth,
                   json={'canais': [{'tipo_canal': 'olx', 'preco_venda': 10}]})
    assert r.status_code == 400


def test_listar_canais_e_precificacao_do_produto(client, auth):
    produto = criar_produto(client, auth)
    client.put(f"/api/produtos/{produto['id']}/canais", headers=auth,
               json={'canais': [{'tipo_canal': 'amazon_fbm', 'preco_venda': 90}]})
    r = client.get(f"/api/produtos/{produto['id']}/canais", headers=auth)
    dados = r.get_json()
    assert len(dados['canais']) == 1
    assert len(dados['disponiveis']) == 10

    r = client.get(f"/api/produtos/{produto['id']}/precificacao", headers=auth)
    assert r.get_json()['melhor_canal'] == 'amazon_fbm'


def test_excluir_produto_remove_canais(app, client, auth):
    produto = criar_produto(client, auth)
    client.put(f"/api/produtos/{produto['id']}/canais", headers=auth,
               json={'canais': [{'tipo_canal': 'site', 'preco_venda': 90}]})
    client.delete(f"/api/produtos/{produto['id']}", headers=auth)
    with app.app_context():
        assert CanalProduto.query.count() == 0
        assert db.session.get(Produto, produto['id']) is None


@pytest.mark.parametrize("rota,corpo,chave,esperado", [
    ('/api/precificacao/simular', {'preco_venda': 100, 'custo_total': 70}, 'lucro', 30),
    ('/api/precificacao/canal', {'tipo_canal': 'site', 'entrada': {'preco': 100, 'custo_item': 60}}, 'lucro', 40),
    ('/api/precificacao/preco-alvo',
     {'tipo_canal': 'site', 'margem_alvo': 50, 'entrada': {'custo_item': 50}}, 'preco', 100),
])
def test_simuladores(client, auth, rota, corpo, chave, esperado):
    r = client.post(rota, json=corpo, headers=auth)
    assert r.status_code == 200
    assert r.get_json()[chave] == esperado


def test_lista_de_canais_disponiveis(client, auth):
    r = client.get('/api/precificacao/canais', headers=auth)
    assert len(r.get_json()) == 10


def test_calculo_de_canal_com_valor_ilegivel(client, auth):
    r = client.post('/api/precificacao/canal', headers=auth,
                    json={'tipo_canal': 'site', 'entrada': {'preco': 'cem reais', 'custo_item': 60}})
    assert r.status_code == 400
    assert 'cem reais' in r.get_json()['erro']


def test_calculo_de_canal_com_milhar_sem_centavos(client, auth):
    r = client.post('/api/precificacao/canal', headers=auth,
                    json={'tipo_canal': 'site', 'entrada': {'preco': 'R$ 1.500', 'custo_item': '1.000'}})
    assert r.status_code == 200
    assert r.get_json()['lucro'] == 500
