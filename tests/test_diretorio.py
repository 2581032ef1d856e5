from modelos import Avaliacao

FORNECEDOR = {
    'nome_fantasia': 'Embalagens Sul',
    'razao_social': 'Embalagens Sul Ltda',
    'cnpj': '11222333000181',
    'categoria': 'Embalagens',
    'contatos': [{'tipo': 'email', 'valor': 'vendas@sul.com'}, {'tipo': 'whatsapp', 'valor': '11987654321'}],
}


def criar_fornecedor(client, headers, **campos):
    dados = dict(FORNECEDOR, **campos)
    r = client.post('/api/fornecedores', json=dados, headers=headers)
    assert r.status_code == 201, r.get_json()
    return r.get_json()


def criar_ferramenta(client, headers):
    r = client.post('/api/ferramentas', headers=headers, json={
        'nome': 'Bling', 'descricao': 'ERP para e-commerce', 'recursos': ['NF-e', 'Estoque'],
        'suporte_brasil': 'funciona'})
    assert r.status_code == 201, r.get_json()
    return r.get_json()


def avaliar(client, headers, alvo, alvo_id, nota, comentario='Bom atendimento'):
    return client.post(f'/api/{alvo}/{alvo_id}/avaliacoes', headers=headers,
                       json={'nota': nota, 'comentario': comentario})


def test_admin_cria_fornecedor_com_contatos(client, auth_admin):
    fornecedor = criar_fornecedor(client, auth_admin)
    assert fornecedor['cnpj_formatado'] == '11.222.333/0001-81'
    assert [c['tipo'] for c in fornecedor['contatos']] == ['email', 'whatsapp']


def test_usuario_comum_nao_escreve_no_diretorio(client, auth, auth_admin):
    r = client.post('/api/fornecedores', json=FORNECEDOR, headers=auth)
    assert r.status_code == 403
    criar_fornecedor(client, auth_admin)
    assert client.get('/api/fornecedores', headers=auth).get_json()['total'] == 1


def test_diretorio_compartilhado_entre_lojas(client, auth_admin, auth_outro):
    fornecedor = criar_fornecedor(client, auth_admin)
    r = client.get(f"/api/fornecedores/{fornecedor['id']}", headers=auth_outro)
    assert r.status_code == 200


def test_cnpj_invalido(client, auth_admin):
    r = client.post('/api/fornecedores', json=dict(FORNECEDOR, cnpj='11.222.333/0001-00'), headers=auth_admin)
    assert r.status_code == 400
    assert any('CNPJ inválido' in d for d in r.get_json()['detalhes'])


def test_editar_fornecedor_preserva_ou_troca_contatos(client, auth_admin):
    fornecedor = criar_fornecedor(client, auth_admin)
    url = f"/api/fornecedores/{fornecedor['id']}"

    r = client.put(url, json={'categoria': 'Caixas'}, headers=auth_admin)
    assert r.get_json()['categoria'] == 'Caixas'
    assert len(r.get_json()['contatos']) == 2

    r = client.put(url, json={'contatos': [{'tipo': 'website', 'valor': 'https://sul.com'}]}, headers=auth_admin)
    assert [c['valor'] for c in r.get_json()['contatos']] == ['https://sul.com']


def test_parceiro_valida_email_e_telefone(client, auth_admin):
    r = client.post('/api/parceiros', headers=auth_admin,
                    json={'nome': 'Agência X', 'email': 'x', 'telefone': '123'})
    assert r.status_code == 400
    assert len(r.get_json()['detalhes']) == 2

    r = client.post('/api/parceiros', headers=auth_admin,
                    json={'nome': 'Agência X', 'email': 'Contato@X.com', 'telefone': '1133334444'})
    assert r.status_code == 201
    assert r.get_json()['email'] == 'contato@x.com'
    assert r.get_json()['telefone_formatado'] == '(11) 3333-4444'


def test_avaliacao_de_fornecedor_aguarda_aprovacao(client, auth, auth_outro, auth_admin):
    fornecedor = criar_fornecedor(client, auth_admin)
    r = avaliar(client, auth, 'fornecedores', fornecedor['id'], 4)
    assert r.status_code == 201
    assert r.get_json()['aprovada'] is False
    avaliacao_id = r.get_json()['id']

    dados = client.get(f"/api/fornecedores/{fornecedor['id']}/avaliacoes", headers=auth).get_json()
    assert len(dados['itens']) == 1
    assert dados['media_avaliacao'] == 0
    dados = client.get(f"/api/fornecedores/{fornecedor['id']}/avaliacoes", headers=auth_outro).get_json()
    assert dados['itens'] == []

    pendentes = client.get('/api/avaliacoes/pendentes', headers=auth_admin).get_json()
    assert pendentes['total'] == 1

    r = client.post(f'/api/avaliacoes/{avaliacao_id}/aprovar', headers=auth_admin)
    assert r.get_json()['media_avaliacao'] == 4
    assert r.get_json()['total_avaliacoes'] == 1

    r = avaliar(client, auth_outro, 'fornecedores', fornecedor['id'], 5)
    client.post(f"/api/avaliacoes/{r.get_json()['id']}/aprovar", headers=auth_admin)
    dados = client.get(f"/api/fornecedores/{fornecedor['id']}", headers=auth).get_json()
    assert dados['media_avaliacao'] == 4.5
    assert dados['total_avaliacoes'] == 2


def test_media_arredondada_em_uma_casa(client, auth, auth_outro, auth_admin):
    ferramenta = criar_ferramenta(client, auth_admin)
    for headers, nota in ((auth, 5), (auth_outro, 4), (auth_admin, 4)):
        assert avaliar(client, headers, 'ferramentas', ferramenta['id'], nota).status_code == 201
    dados = client.get(f"/api/ferramentas/{ferramenta['id']}", headers=auth).get_json()
    assert dados['media_avaliacao'] == 4.3
    assert dados['total_avaliacoes'] == 3


def test_avaliacao_invalida(client, auth, auth_admin):
    ferramenta = criar_ferramenta(client, auth_admin)
    assert avaliar(client, auth, 'ferramentas', ferramenta['id'], 6).status_code == 400
    assert avaliar(client, auth, 'ferramentas', ferramenta['id'], 3, comentario='  ').status_code == 400
    assert avaliar(client, auth, 'ferramentas', 999, 3).status_code == 404


def test_excluir_avaliacao(client, auth, auth_outro, auth_admin):
    ferramenta = criar_ferramenta(client, auth_admin)
    avaliacao = avaliar(client, auth, 'ferramentas', ferramenta['id'], 2).get_json()

    assert client.delete(f"/api/avaliacoes/{avaliacao['id']}", headers=auth_outro).status_code == 403
    assert client.delete(f"/api/avaliacoes/{avaliacao['id']}", headers=auth).status_code == 200

    dados = client.get(f"/api/ferramentas/{ferramenta['id']}", headers=auth).get_json()
    assert dados['total_avaliacoes'] == 0
    assert dados['media_avaliacao'] == 0


def test_pendentes_exige_admin(client, auth):
    assert client.get('/api/avaliacoes/pendentes', headers=auth).status_code == 403


def test_excluir_fornecedor_remove_avaliacoes(app, client, auth, auth_admin):
    fornecedor = criar_fornecedor(client, auth_admin)
    avaliar(client, auth, 'fornecedores', fornecedor['id'], 5)
    assert client.delete(f"/api/fornecedores/{fornecedor['id']}", headers=auth_admin).status_code == 200
    with app.app_context():
        assert Avaliacao.query.count() == 0
