"""Gerenciador CRUD genérico: registra num blueprint as rotas REST de um modelo.

Rotas criadas para um prefixo `/x`:
    GET    /x              lista com busca, filtros, ordenação e paginação
    POST   /x              cria
    GET    /x/<id>         detalhe
    PUT    /x/<id>         edição parcial
    DELETE /x/<id>         exclusão
    POST   /x/lote         ação em lote (excluir, ativar, desativar)
    GET    /x/exportar     CSV com os mesmos filtros da listagem
    POST   /x/importar     CSV (arquivo `arquivo` ou corpo text/csv)
"""
import logging

from flask import g, jsonify, request
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from erros import Conflito, ErroValidacao
from esquemas import AcaoLoteEntrada
from exportacao import exportar_csv, importar_csv, resposta_csv
from modelos import db
from seguranca import escopo_loja, obter_da_loja, protecao, registrar_auditoria

logger = logging.getLogger(__name__)

POR_PAGINA_PADRAO = 20
POR_PAGINA_MAXIMO = 100
VERDADEIROS = ('1', 'true', 'sim', 'yes', 'on')


def aplicar_campos(registro, dados):
    for chave, valor in dados.items():
        setattr(registro, chave, valor)


class GerenciadorCrud:

    def __init__(self, modelo, esquema, recurso, campos_busca=(), filtros=(), colunas_csv=None,
                 por_loja=True, nivel_leitura='user', nivel_escrita='user', ordenacao_padrao='id',
                 aplicar=None, antes_salvar=None, apos_salvar=None, antes_excluir=None,
                 serializar=None):
        self.modelo = modelo
        self.esquema = esquema
        self.recurso = recurso
        self.campos_busca = campos_busca
        self.filtros = filtros
        self.colunas_csv = colunas_csv or list(esquema.model_fields)
        self.por_loja = por_loja
        self.nivel_leitura = nivel_leitura
        self.nivel_escrita = nivel_escrita
        self.ordenacao_padrao = ordenacao_padrao
        self.aplicar = aplicar or aplicar_campos
        self.antes_salvar = antes_salvar
        self.apos_salvar = apos_salvar
        self.antes_excluir = antes_excluir
        self.serializar = serializar or (lambda registro: registro.para_dict())

    # ==========================================================================
    # REGISTRO DAS ROTAS
    # ==========================================================================
    def registrar(self, bp, prefixo):
        leitura = protecao(self.nivel_leitura)
        escrita = protecao(self.nivel_escrita)

        nome = self.recurso
        bp.add_url_rule(prefixo, f'{nome}_listar', leitura(self.listar), methods=['GET'])
        bp.add_url_rule(prefixo, f'{nome}_criar', escrita(self.criar), methods=['POST'])
        bp.add_url_rule(f'{prefixo}/exportar', f'{nome}_exportar', leitura(self.exportar), methods=['GET'])
        bp.add_url_rule(f'{prefixo}/importar', f'{nome}_importar', escrita(self.importar), methods=['POST'])
        bp.add_url_rule(f'{prefixo}/lote', f'{nome}_lote', escrita(self.lote), methods=['POST'])
        bp.add_url_rule(f'{prefixo}/<int:registro_id>', f'{nome}_obter', leitura(self.obter), methods=['GET'])
        bp.add_url_rule(f'{prefixo}/<int:registro_id>', f'{nome}_atualizar', escrita(self.atualizar), methods=['PUT'])
        bp.add_url_rule(f'{prefixo}/<int:registro_id>', f'{nome}_excluir', escrita(self.excluir), methods=['DELETE'])
        return self

    # ==========================================================================
    # CONSULTAS
    # ==========================================================================
    def _converter(self, campo, valor):
        tipo = self.modelo.__table__.columns[campo].type
        try:
            if isinstance(tipo, db.Boolean):
                return valor.lower() in VERDADEIROS
            if isinstance(tipo, db.Integer):
                return int(valor)
            if isinstance(tipo, db.Float):
                return float(valor)
        except ValueError:
            raise ErroValidacao(f"Filtro inválido: {campo}")
        return valor

    def consulta(self):
        query = self.modelo.query
        if self.por_loja:
            query = escopo_loja(query, self.modelo)

        busca = request.args.get('busca', '').strip()
        if busca and self.campos_busca:
            query = query.filter(or_(*[getattr(self.modelo, campo).ilike(f"%{busca}%")
                                       for campo in self.campos_busca]))

        for campo in self.filtros:
            valor = request.args.get(campo)
            if valor not in (None, ''):
                query = query.filter(getattr(self.modelo, campo) == self._converter(campo, valor))

        ordenar = request.args.get('ordenar', self.ordenacao_padrao)
        if ordenar not in self.modelo.__table__.columns.keys():
            raise ErroValidacao(f"Campo de ordenação inválido: {ordenar}")
        coluna = getattr(self.modelo, ordenar)
        direcao = request.args.get('direcao', 'asc').lower()
        return query.order_by(coluna.desc() if direcao == 'desc' else coluna.asc(), self.modelo.id.asc())

    def _obter(self, registro_id):
        return obter_da_loja(self.modelo, registro_id, self.por_loja)

    def listar(self):
        pagina = max(request.args.get('pagina', 1, type=int), 1)
        por_pagina = request.args.get('por_pagina', POR_PAGINA_PADRAO, type=int)
        por_pagina = min(max(por_pagina, 1), POR_PAGINA_MAXIMO)
        paginacao = self.consulta().paginate(page=pagina, per_page=por_pagina, error_out=False)
        return jsonify({
            'itens': [self.serializar(r) for r in paginacao.items],
            'total': paginacao.total,
            'pagina': paginacao.page,
            'paginas': paginacao.pages,
            'por_pagina': por_pagina,
        })

    def obter(self, registro_id):
        return jsonify(self.serializar(self._obter(registro_id)))

    # ==========================================================================
    # ESCRITA
    # ==========================================================================
    def _estado_atual(self, registro):
        estado = {}
        for campo in self.esquema.model_fields:
            valor = getattr(registro, campo, None)
            if isinstance(valor, list) and valor and hasattr(valor[0], 'para_dict'):
                valor = [item.para_dict() for item in valor]
            estado[campo] = valor
        return estado

    def _salvar(self, registro, dados, criado):
        if self.antes_salvar:
            self.antes_salvar(registro, dados)
        self.aplicar(registro, dados)
        if criado:
            db.session.add(registro)
        db.session.flush()
        if self.apos_salvar:
            self.apos_salvar(registro, criado)
        registrar_auditoria('CRIOU' if criado else 'EDITOU', self.recurso, registro.id)

    def _novo(self, dados):
        registro = self.modelo()
        if self.por_loja:
            registro.loja_id = g.usuario.loja_id
        self._salvar(registro, dados, criado=True)
        return registro

    def _transacao(self, operacao):
        """Executa a operação e faz commit; qualquer falha desfaz a sessão."""
        try:
            resultado = operacao()
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            logger.warning(f"Conflito ao salvar {self.recurso}: {e.orig}")
            raise Conflito()
        except Exception:
            db.session.rollback()
            raise
        return resultado

    def criar(self):
        dados = self.esquema.model_validate(request.get_json(silent=True) or {})
        registro = self._transacao(lambda: self._novo(dados.model_dump()))
        logger.info(f"{self.recurso} #{registro.id} criado por {g.usuario.username}")
        return jsonify(self.serializar(registro)), 201

    def atualizar(self, registro_id):
        registro = self._obter(registro_id)
        payload = request.get_json(silent=True) or {}
        estado = self._estado_atual(registro)
        estado.update(payload)
        dados = self.esquema.model_validate(estado)
        alterados = set(payload) & set(self.esquema.model_fields)
        self._transacao(lambda: self._salvar(registro, dados.model_dump(include=alterados), criado=False))
        return jsonify(self.serializar(registro))

    def _remover(self, registro):
        if self.antes_excluir:
            self.antes_excluir(registro)
        db.session.delete(registro)

    def excluir(self, registro_id):
        registro = self._obter(registro_id)

        def operacao():
            self._remover(registro)
            registrar_auditoria('EXCLUIU', self.recurso, registro_id)

        self._transacao(operacao)
        logger.info(f"{self.recurso} #{registro_id} excluído por {g.usuario.username}")
        return jsonify({'mensagem': 'Registro excluído', 'id': registro_id})

    def lote(self):
        entrada = AcaoLoteEntrada.model_validate(request.get_json(silent=True) or {})
        if entrada.acao != 'excluir' and not hasattr(self.modelo, 'ativo'):
            raise ErroValidacao(f"Ação '{entrada.acao}' não se aplica a {self.recurso}")

        query = self.modelo.query.filter(self.modelo.id.in_(entrada.ids))
        if self.por_loja:
            query = escopo_loja(query, self.modelo)
        registros = query.all()
        afetados = sorted(r.id for r in registros)

        def operacao():
            for registro in registros:
                if entrada.acao == 'excluir':
                    self._remover(registro)
                else:
                    registro.ativo = entrada.acao == 'ativar'
            registrar_auditoria('LOTE', self.recurso, detalhes=f"{entrada.acao}: {afetados}")

        self._transacao(operacao)
        return jsonify({
            'acao': entrada.acao,
            'afetados': len(afetados),
            'ids': afetados,
            'nao_encontrados': sorted(set(entrada.ids) - set(afetados)),
        })

    # ==========================================================================
    # EXPORTAÇÃO / IMPORTAÇÃO
    # ==========================================================================
    def exportar(self):
        registros = [self.serializar(r) for r in self.consulta().all()]
        return resposta_csv(exportar_csv(registros, self.colunas_csv), f'{self.recurso}.csv')

    def importar(self):
        arquivo = request.files.get('arquivo')
        conteudo = arquivo.read() if arquivo else request.get_data()
        try:
            texto = conteudo.decode('utf-8-sig')
        except UnicodeDecodeError:
            raise ErroValidacao("Arquivo deve estar em UTF-8")
        if not texto.strip():
            raise ErroValidacao("Arquivo CSV vazio")

        validos, erros = importar_csv(texto, self.esquema)

        def operacao():
            ids = [self._novo(dados.model_dump()).id for dados in validos]
            registrar_auditoria('IMPORTOU', self.recurso, detalhes=f"{len(ids)} registros")
            return ids

        ids = self._transacao(operacao)
        logger.info(f"Importação de {self.recurso}: {len(ids)} ok, {len(erros)} com erro")
        return jsonify({'importados': len(ids), 'ids': ids, 'erros': erros})
