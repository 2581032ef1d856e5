"""Esquemas pydantic dos payloads recebidos pela API."""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from precificacao import CANAIS
from validacoes import (validar_cnpj, validar_dimensoes, validar_email, validar_peso,
                        validar_senha, validar_telefone)


def _nao_vazio(v):
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Campo obrigatório")
    return v


def _checar(erros, v):
    if erros:
        raise ValueError("; ".join(erros))
    return v


class Esquema(BaseModel):
    model_config = {"str_strip_whitespace": True, "extra": "ignore"}


# ==============================================================================
# AUTENTICAÇÃO E USUÁRIOS
# ==============================================================================
class LoginEntrada(Esquema):
    username: str = Field(..., min_length=1)
    senha: str = Field(..., min_length=1)


class TrocaSenhaEntrada(Esquema):
    senha_atual: str
    nova_senha: str

    @field_validator("nova_senha")
    @classmethod
    def validar_forca(cls, v):
        return _checar(validar_senha(v), v)


class LojaEntrada(Esquema):
    nome: str = Field(..., max_length=120)
    ativo: bool = True

    @field_validator("nome")
    @classmethod
    def obrigatorio(cls, v):
        return _nao_vazio(v)


class UsuarioEntrada(Esquema):
    username: str = Field(..., min_length=3, max_length=50)
    senha: str
    email: Optional[str] = None
    nome: Optional[str] = None
    role: Literal['user', 'admin', 'super_admin'] = 'user'
    loja_id: Optional[int] = None
    ativo: bool = True

    @field_validator("senha")
    @classmethod
    def validar_forca(cls, v):
        return _checar(validar_senha(v), v)

    @field_validator("email")
    @classmethod
    def validar_formato_email(cls, v):
        if not v:
            return None
        return _checar(validar_email(v), v.lower())


class UsuarioEdicao(Esquema):
    email: Optional[str] = None
    nome: Optional[str] = None
    role: Literal['user', 'admin', 'super_admin'] = 'user'
    loja_id: Optional[int] = None
    ativo: bool = True

    @field_validator("email")
    @classmethod
    def validar_formato_email(cls, v):
        if not v:
            return None
        return _checar(validar_email(v), v.lower())


# ==============================================================================
# DIRETÓRIO
# ==============================================================================
class ContatoEntrada(Esquema):
    tipo: Literal['phone', 'email', 'whatsapp', 'website']
    valor: str
    rotulo: Optional[str] = None

    @field_validator("valor")
    @classmethod
    def obrigatorio(cls, v):
        return _nao_vazio(v)


class FornecedorEntrada(Esquema):
    nome_fantasia: str = Field(..., max_length=150)
    razao_social: str = Field(..., max_length=200)
    cnpj: Optional[str] = None
    categoria: Optional[str] = None
    descricao: Optional[str] = None
    logo: Optional[str] = None
    observacoes: Optional[str] = None
    ativo: bool = True
    verificado: bool = False
    contatos: Optional[List[ContatoEntrada]] = None

    @field_validator("nome_fantasia", "razao_social")
    @classmethod
    def obrigatorio(cls, v):
        return _nao_vazio(v)

    @field_validator("cnpj")
    @classmethod
    def validar_cnpj(cls, v):
        if not v:
            return None
        return _checar(validar_cnpj(v), v)


class ParceiroEntrada(Esquema):
    nome: str = Field(..., max_length=150)
    email: str
    telefone: str
    especialidades: Optional[str] = None
    descricao: Optional[str] = None
    servicos: Optional[str] = None
    endereco: Optional[Dict[str, Any]] = None
    website: Optional[str] = None
    instagram: Optional[str] = None
    linkedin: Optional[str] = None
    logo: Optional[str] = None
    ativo: bool = True
    verificado: bool = False
    contatos: Optional[List[ContatoEntrada]] = None

    @field_validator("nome")
    @classmethod
    def obrigatorio(cls, v):
        return _nao_vazio(v)

    @field_validator("email")
    @classmethod
    def validar_formato_email(cls, v):
        return _checar(validar_email(v), v.lower())

    @field_validator("telefone")
    @classmethod
    def validar_formato_telefone(cls, v):
        return _checar(validar_telefone(v), v)


class FerramentaEntrada(Esquema):
    nome: str = Field(..., max_length=150)
    descricao: str
    tipo: Optional[str] = None
    logo: Optional[str] = None
    website: Optional[str] = None
    preco: Optional[str] = None
    recursos: List[str] = Field(default_factory=list)
    pros: List[str] = Field(default_factory=list)
    contras: List[str] = Field(default_factory=list)
    suporte_brasil: Literal['funciona', 'parcial', 'nao'] = 'funciona'
    ativo: bool = True
    verificado: bool = False

    @field_validator("nome", "descricao")
    @classmethod
    def obrigatorio(cls, v):
        return _nao_vazio(v)


class AvaliacaoEntrada(Esquema):
    nota: int = Field(..., ge=1, le=5)
    comentario: str

    @field_validator("comentario")
    @classmethod
    def obrigatorio(cls, v):
        return _nao_vazio(v)


# ==============================================================================
# CATÁLOGO
# ==============================================================================
class CaixaEntrada(Esquema):
    codigo: str = Field(..., max_length=50)
    comprimento: float = Field(..., gt=0)
    largura: float = Field(..., gt=0)
    altura: float = Field(..., ge=0)
    tipo_onda: Optional[str] = None
    papel: Optional[str] = None
    tem_logo: bool = False
    custo_unitario: float = Field(0, ge=0)
    ideal_para: Optional[str] = None
    status: Literal['ativa', 'inativa'] = 'ativa'
    peso: float = Field(0, ge=0)
    moq: Optional[int] = Field(None, ge=0)
    observacoes: Optional[str] = None

    @field_validator("codigo")
    @classmethod
    def obrigatorio(cls, v):
        return _nao_vazio(v)

    @field_validator("tipo_onda", "papel")
    @classmethod
    def padronizar(cls, v):
        return v.upper() if v else v


class ProdutoEntrada(Esquema):
    nome: str = Field(..., max_length=200)
    foto: Optional[str] = None
    sku: Optional[str] = None
    codigo_interno: Optional[str] = None
    ean: Optional[str] = None
    dimensoes: Optional[Dict[str, Any]] = None
    peso: Optional[float] = None
    marca: Optional[str] = None
    categoria: Optional[str] = None
    fornecedor_id: Optional[int] = None
    caixa_id: Optional[int] = None
    ncm: Optional[str] = None
    custo_item: float = Field(0, ge=0)
    custo_embalagem: Optional[float] = Field(None, ge=0)
    imposto_percentual: float = Field(0, ge=0, le=100)
    observacoes: Optional[str] = None
    descricoes: Optional[Dict[str, Any]] = None
    ativo: bool = True

    @field_validator("nome")
    @classmethod
    def obrigatorio(cls, v):
        return _nao_vazio(v)

    @field_validator("dimensoes")
    @classmethod
    def validar_medidas(cls, v):
        if not v:
            return None
        return _checar(validar_dimensoes(v), v)

    @field_validator("peso")
    @classmethod
    def validar_peso(cls, v):
        if v is None:
            return v
        return _checar(validar_peso(v), v)


class CanalEntrada(Esquema):
    tipo_canal: str
    ativo: bool = True
    preco_venda: float = Field(0, ge=0)
    custos: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("tipo_canal")
    @classmethod
    def validar_canal(cls, v):
        if v not in CANAIS:
            raise ValueError(f"Canal desconhecido: {v}")
        return v


class CanaisEntrada(Esquema):
    canais: List[CanalEntrada]


class SimulacaoEntrada(Esquema):
    preco_venda: float = Field(..., gt=0)
    custo_total: float = Field(..., ge=0)


class CalculoCanalEntrada(Esquema):
    tipo_canal: str
    entrada: Dict[str, Any] = Field(default_factory=dict)


class PrecoAlvoEntrada(CalculoCanalEntrada):
    margem_alvo: float = Field(..., gt=-100, lt=100)


# ==============================================================================
# CONTEÚDO, AGENTES E COBRANÇA
# ==============================================================================
class NoticiaEntrada(Esquema):
    titulo: str = Field(..., max_length=200)
    resumo: Optional[str] = None
    conteudo: str
    categoria: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    publicada: bool = False
    destaque: bool = False

    @field_validator("titulo", "conteudo")
    @classmethod
    def obrigatorio(cls, v):
        return _nao_vazio(v)


class DescricaoHtmlEntrada(Esquema):
    texto: str = Field(..., min_length=1)
    produto_id: Optional[int] = None


class AcaoLoteEntrada(Esquema):
    acao: Literal['excluir', 'ativar', 'desativar']
    ids: List[int] = Field(..., min_length=1)


class CheckoutAssinaturaEntrada(Esquema):
    plano: Literal['basic', 'premium', 'master']
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CheckoutCreditosEntrada(Esquema):
    pacote: str
    quantidade: int = Field(1, ge=1, le=10)
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class AjusteCreditosEntrada(Esquema):
    quantidade: int
    descricao: str = Field(..., min_length=1)

    @field_validator("quantidade")
    @classmethod
    def nao_zero(cls, v):
        if v == 0:
            raise ValueError("Quantidade não pode ser zero")
        return v
