from modelos import Noticia


def criar_noticia(client, headers, titulo, publicada=True, **campos):
    dados = {'titulo': titulo, 'conteudo': f'Conteúdo de {titulo}', 'resumo': 'Resumo',
             'publicada': publicada}
    dados.update(campos)
    r = client.post('/api/noticias', json=dados, headers=headers)
    assert r.status_code == 201, r.get_json()
    return r.get_json()


def test_admin_gerencia_noticias(app, client, auth_admin, admin):
    noticia = criar_noticia(client, auth_admin, 'Taxas da Shopee mudam', tags=['shopee'])
    assert noticia['autor_id'] == admin
    assert noticia['tags'] == ['shopee']
    assert noticia['data']

    r = client.put(f"/api/noticias/{noticia['id']}", json={'destaque': True}, headers=auth_admin)
    assert r.get_json()['destaque'] is True
    assert r.get_json()['titulo'] == 'Taxas da Shopee mudam'


def test_usuario_comum_nao_gerencia_noticias(client, auth):
    assert client.get('/api/noticias', headers=auth).status_code == 403
    r = client.post('/api/noticias', json={'titulo': 'X', 'conteudo': 'Y'}, headers=auth)
    assert r.status_code == 403


def test_publicadas_visiveis_para_usuarios(client, auth, auth_admin):
    publicada = criar_noticia(client, auth_admin, 'Publicada')
    rascunho = criar_noticia(client, auth_admin, 'Rascunho', publicada=False)

    itens = client.get('/api/noticias/publicadas', headers=auth).get_json()
    assert [n['titulo'] for n in itens] == ['Publicada']
    assert 'conteudo' in itens[0]

    previa = client.get('/api/noticias/publicadas/previa', headers=auth).get_json()
    assert 'conteudo' not in previa[0]

    assert client.get(f"/api/noticias/publicadas/{publicada['id']}", headers=auth).status_code == 200
    assert client.get(f"/api/noticias/publicadas/{rascunho['id']}", headers=auth).status_code == 404


def test_previa_limitada_a_dez(client, auth, auth_admin):
    for i in range(12):
        criar_noticia(client, auth_admin, f'Notícia {i}')
    assert len(client.get('/api/noticias/publicadas/previa', headers=auth).get_json()) == 10
    assert len(client.get('/api/noticias/publicadas', headers=auth).get_json()) == 12


def test_publicar_em_lote(app, client, auth_admin):
    ids = [criar_noticia(client, auth_admin, f'N{i}', publicada=False)['id'] for i in range(3)]
    r = client.post('/api/noticias/lote', headers=auth_admin, json={'acao': 'ativar', 'ids': ids[:2]})
    assert r.get_json()['afetados'] == 2
    with app.app_context():
        assert Noticia.query.filter_by(publicada=True).count() == 2
