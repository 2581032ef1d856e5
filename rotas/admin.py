import logging

from flask import Blueprint, g, jsonify, request

from cobranca import adicionar_creditos
from crud import GerenciadorCrud
from erros import AcessoNegado, Conflito, ErroValidacao, NaoEncontrado
from esquemas import AjusteCreditosEntrada, LojaEntrada, UsuarioEdicao, UsuarioEntrada
from modelos import (Avaliacao, Caixa, Ferramenta, Fornecedor, Loja, LogAuditoria, Noticia, Parceiro,
                     Produto, Usuario, db)
from seguranca import (admin_required, escopo_loja, gerar_hash_senha, login_required,
                       registrar_auditoria)
from validacoes import validar_senha

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


# ==============================================================================
# LOJAS (SUPER ADMIN)
# ==============================================================================
def _impedir_exclusao_com_usuarios(loja):
    if Usuario.query.filter_by(loja_id=loja.id).count():
        raise Conflito("Loja possui usuários vinculados")


lojas = GerenciadorCrud(
    Loja, LojaEntrada, 'lojas',
    campos_busca=('nome',),
    filtros=('ativo',),
    colunas_csv=['id', 'nome', 'ativo', 'criado_em'],
    por_loja=False,
    nivel_leitura='super_admin',
    nivel_escrita='super_admin',
    antes_excluir=_impedir_exclusao_com_usuarios,
).registrar(admin_bp, '/lojas')


# ==============================================================================
# USUÁRIOS
# ==============================================================================
def _obter_usuario(usuario_id):
    usuario = db.session.get(Usuario, usuario_id)
    if not usuario:
        raise NaoEncontrado("Usuário não encontrado")
    if not g.usuario.is_super_admin and usuario.loja_id != g.usuario.loja_id:
        raise NaoEncontrado("Usuário não encontrado")
    return usuario


def _conferir_papel(role, loja_id):
    if g.usuario.is_super_admin:
        if loja_id and not db.session.get(Loja, loja_id):
            raise ErroValidacao("Loja não encontrada")
        return loja_id
    if role == 'super_admin':
        raise AcessoNegado("Apenas o administrador mestre pode criar outro administrador mestre")
    return g.usuario.loja_id


@admin_bp.route('/usuarios')
@login_required
@admin_required
def listar_usuarios():
    query = escopo_loja(Usuario.query, Usuario)
    busca = request.args.get('busca', '').strip()
    if busca:
        query = query.filter(Usuario.username.ilike(f"%{busca}%") | Usuario.nome.ilike(f"%{busca}%"))
    usuarios = query.order_by(Usuario.username.asc()).all()
    return jsonify([u.para_dict() for u in usuarios])


@admin_bp.route('/usuarios', methods=['POST'])
@login_required
@admin_required
def criar_usuario():
    dados = UsuarioEntrada.model_validate(request.get_json(silent=True) or {})
    loja_id = _conferir_papel(dados.role, dados.loja_id)
    if Usuario.query.filter_by(username=dados.username).first():
        raise Conflito("Nome de usuário já existe")
    if dados.email and Usuario.query.filter_by(email=dados.email).first():
        raise Conflito("Email já cadastrado")

    usuario = Usuario(
        username=dados.username,
        email=dados.email,
        nome=dados.nome,
        senha_hash=gerar_hash_senha(dados.senha),
        role=dados.role,
        ativo=dados.ativo,
        loja_id=loja_id,
    )
    try:
        db.session.add(usuario)
        db.session.flush()
        registrar_auditoria('CRIOU', 'usuarios', usuario.id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(f"Usuário {usuario.username} criado por {g.usuario.username}")
    return jsonify(usuario.para_dict()), 201


@admin_bp.route('/usuarios/<int:usuario_id>', methods=['PUT'])
@login_required
@admin_required
def editar_usuario(usuario_id):
    usuario = _obter_usuario(usuario_id)
    if usuario.is_super_admin and not g.usuario.is_super_admin:
        raise AcessoNegado()
    payload = request.get_json(silent=True) or {}
    estado = {campo: getattr(usuario, campo) for campo in UsuarioEdicao.model_fields}
    estado.update(payload)
    dados = UsuarioEdicao.model_validate(estado)
    if usuario.id == g.usuario.id and (not dados.ativo or dados.role != usuario.role):
        raise ErroValidacao("Você não pode desativar ou rebaixar o próprio usuário")
    if 'role' in payload or 'loja_id' in payload:
        loja_pedida = dados.loja_id if 'loja_id' in payload else usuario.loja_id
        dados.loja_id = _conferir_papel(dados.role, loja_pedida)
    if payload.get('senha'):
        erros = validar_senha(payload['senha'])
        if erros:
            raise ErroValidacao("; ".join(erros), detalhes=erros)

    try:
        for campo in set(payload) & set(UsuarioEdicao.model_fields):
            setattr(usuario, campo, getattr(dados, campo))
        if payload.get('senha'):
            usuario.senha_hash = gerar_hash_senha(payload['senha'])
        registrar_auditoria('EDITOU', 'usuarios', usuario.id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(usuario.para_dict())


@admin_bp.route('/usuarios/<int:usuario_id>', methods=['DELETE'])
@login_required
@admin_required
def excluir_usuario(usuario_id):
    usuario = _obter_usuario(usuario_id)
    if usuario.id == g.usuario.id:
        raise ErroValidacao("Você não pode excluir o próprio usuário")
    if usuario.is_super_admin and not g.usuario.is_super_admin:
        raise AcessoNegado()
    try:
        # usuários com histórico ficam apenas desativados
        usuario.ativo = False
        registrar_auditoria('EXCLUIU', 'usuarios', usuario.id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({'mensagem': 'Usuário desativado', 'id': usuario_id})


@admin_bp.route('/usuarios/<int:usuario_id>/creditos', methods=['POST'])
@login_required
@admin_required
def ajustar_creditos(usuario_id):
    usuario = _obter_usuario(usuario_id)
    dados = AjusteCreditosEntrada.model_validate(request.get_json(silent=True) or {})
    try:
        transacao = adicionar_creditos(usuario, dados.quantidade, 'ajuste',
                                       f"{dados.descricao} (por {g.usuario.username})")
        registrar_auditoria('CREDITOS', 'usuarios', usuario.id, detalhes=f"{dados.quantidade:+d}")
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(transacao.para_dict())


# ==============================================================================
# AUDITORIA E RESUMO
# ==============================================================================
@admin_bp.route('/auditoria')
@login_required
@admin_required
def auditoria():
    query = escopo_loja(LogAuditoria.query, LogAuditoria)
    for campo in ('acao', 'recurso', 'usuario_id'):
        valor = request.args.get(campo)
        if valor:
            query = query.filter(getattr(LogAuditoria, campo) == valor)
    pagina = max(request.args.get('pagina', 1, type=int), 1)
    por_pagina = min(max(request.args.get('por_pagina', 50, type=int), 1), 200)
    paginacao = query.order_by(LogAuditoria.data.desc(), LogAuditoria.id.desc()).paginate(
        page=pagina, per_page=por_pagina, error_out=False)
    return jsonify({
        'itens': [log.para_dict() for log in paginacao.items],
        'total': paginacao.total,
        'pagina': paginacao.page,
        'paginas': paginacao.pages,
    })


@admin_bp.route('/resumo')
@login_required
@admin_required
def resumo():
    return jsonify({
        'produtos': escopo_loja(Produto.query, Produto).count(),
        'produtos_ativos': escopo_loja(Produto.query, Produto).filter_by(ativo=True).count(),
        'caixas': escopo_loja(Caixa.query, Caixa).count(),
        'usuarios': escopo_loja(Usuario.query, Usuario).count(),
        'fornecedores': Fornecedor.query.count(),
        'parceiros': Parceiro.query.count(),
        'ferramentas': Ferramenta.query.count(),
        'avaliacoes_pendentes': Avaliacao.query.filter_by(aprovada=False).count(),
        'noticias_publicadas': Noticia.query.filter_by(publicada=True).count(),
    })
