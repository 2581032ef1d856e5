from flask import Blueprint, g, jsonify

from crud import GerenciadorCrud
from erros import NaoEncontrado
from esquemas import NoticiaEntrada
from modelos import Noticia, db
from seguranca import login_required

conteudo_bp = Blueprint('conteudo', __name__, url_prefix='/api')

LIMITE_PUBLICADAS = 50
LIMITE_PREVIA = 10


def _definir_autor(noticia, criado):
    if criado and not noticia.autor_id:
        noticia.autor_id = g.usuario.id


noticias = GerenciadorCrud(
    Noticia, NoticiaEntrada, 'noticias',
    campos_busca=('titulo', 'resumo', 'categoria'),
    filtros=('categoria', 'publicada', 'destaque'),
    colunas_csv=['id', 'titulo', 'resumo', 'conteudo', 'categoria', 'tags', 'publicada', 'destaque',
                 'criado_em'],
    por_loja=False,
    nivel_leitura='admin',
    nivel_escrita='admin',
    ordenacao_padrao='criado_em',
    apos_salvar=_definir_autor,
).registrar(conteudo_bp, '/noticias')


def _publicadas():
    return Noticia.query.filter_by(publicada=True).order_by(Noticia.criado_em.desc(), Noticia.id.desc())


@conteudo_bp.route('/noticias/publicadas')
@login_required
def noticias_publicadas():
    return jsonify([n.para_dict() for n in _publicadas().limit(LIMITE_PUBLICADAS).all()])


@conteudo_bp.route('/noticias/publicadas/previa')
@login_required
def noticias_previa():
    return jsonify([n.para_previa() for n in _publicadas().limit(LIMITE_PREVIA).all()])


@conteudo_bp.route('/noticias/publicadas/<int:noticia_id>')
@login_required
def noticia_publicada(noticia_id):
    noticia = db.session.get(Noticia, noticia_id)
    if not noticia or not noticia.publicada:
        raise NaoEncontrado("Notícia não encontrada")
    return jsonify(noticia.para_dict())
