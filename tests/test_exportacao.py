import io

from esquemas import CaixaEntrada
from exportacao import exportar_csv, importar_csv


def test_exportar_csv_serializa_tipos():
    conteudo = exportar_csv(
        [{'id': 1, 'nome': 'Panela', 'ativo': True, 'dimensoes': {'altura': 10}, 'peso': None}],
        ['id', 'nome', 'ativo', 'dimensoes', 'peso'])
    linhas = conteudo.splitlines()
    assert linhas[0] == 'id,nome,ativo,dimensoes,peso'
    assert linhas[1] == '1,Panela,true,"{""altura"": 10}",'


def test_importar_csv_separa_validos_e_erros():
    texto = (
        '\ufeffcodigo,comprimento,largura,altura,tipo_onda\n'
        '121,110,110,240,dupla\n'
        ',410,240,70,dupla\n'
        '\n'
        '98,abc,150,260,simples\n'
    )
    validos, erros = importar_csv(texto, CaixaEntrada)
    assert [c.codigo for c in validos] == ['121']
    assert validos[0].tipo_onda == 'DUPLA'
    assert [e['linha'] for e in erros] == [3, 5]
    assert any('comprimento' in m for m in erros[1]['erros'])


def test_exportar_caixas_pela_api(client, auth):
    client.post('/api/caixas', headers=auth, json={'codigo': '121', 'comprimento': 110, 'largura': 110,
                                                   'altura': 240, 'tem_logo': True})
    r = client.get('/api/caixas/exportar', headers=auth)
    assert r.status_code == 200
    assert r.headers['Content-Type'].startswith('text/csv')
    assert 'caixas.csv' in r.headers['Content-Disposition']
    linhas = r.get_data(as_text=True).splitlines()
    assert linhas[0].startswith('id,codigo,comprimento')
    assert ',121,110.0,110.0,240.0,' in linhas[1]
    assert len(linhas) == 2


def test_importar_caixas_por_arquivo(client, auth):
    csv_texto = ('codigo,comprimento,largura,altura,custo_unitario\n'
                 '61,250,250,150,2.70\n'
                 '96,250,250,200,2.16\n'
                 'ruim,0,250,200,1\n')
    r = client.post('/api/caixas/importar', headers=auth, content_type='multipart/form-data',
                    data={'arquivo': (io.BytesIO(csv_texto.encode('utf-8')), 'caixas.csv')})
    assert r.status_code == 200
    dados = r.get_json()
    assert dados['importados'] == 2
    assert dados['erros'][0]['linha'] == 4
    assert client.get('/api/caixas', headers=auth).get_json()['total'] == 2


def test_importar_corpo_csv(client, auth):
    r = client.post('/api/caixas/importar', headers=auth, content_type='text/csv',
                    data='codigo,comprimento,largura,altura\n87,220,150,120\n')
    assert r.get_json()['importados'] == 1


def test_importar_vazio(client, auth):
    r = client.post('/api/caixas/importar', headers=auth, content_type='text/csv', data='  ')
    assert r.status_code == 400


def test_importar_arquivo_fora_de_utf8(client, auth):
    conteudo = 'codigo,comprimento,largura,altura\nCaixa Média,1,1,1\n'.encode('latin-1')
    r = client.post('/api/caixas/importar', headers=auth, content_type='multipart/form-data',
                    data={'arquivo': (io.BytesIO(conteudo), 'caixas.csv')})
    assert r.status_code == 400
    assert r.get_json()['erro'] == "Arquivo deve estar em UTF-8"

    r = client.post('/api/caixas/importar', headers=auth, content_type='text/csv',
                    data=b'codigo,comprimento,largura,altura\n\xff\xfe,1,1,1\n')
    assert r.status_code == 400


def test_importar_parceiros_com_json_na_celula(client, auth_admin):
    csv_texto = ('nome,email,telefone,endereco\n'
                 'Agência X,contato@x.com,11987654321,"{""cidade"": ""São Paulo""}"\n')
    r = client.post('/api/parceiros/importar', headers=auth_admin, content_type='text/csv', data=csv_texto)
    assert r.get_json()['importados'] == 1
    parceiro = client.get('/api/parceiros', headers=auth_admin).get_json()['itens'][0]
    assert parceiro['endereco'] == {'cidade': 'São Paulo'}
