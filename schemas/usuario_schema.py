from datetime import datetime
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field
from typing import Optional

from models.enums import TipoUsuario, StatusAssinatura

PADRAO_TELEFONE = r"^55\d{10,11}$"


class RegistroUsuarioSchema(BaseModel):
    nome: str = Field(min_length=2)
    email: EmailStr
    senha: str = Field(min_length=6)
    telefone: Optional[str] = Field(default=None, pattern=PADRAO_TELEFONE)

class LoginDataSchema(BaseModel):
    email: EmailStr
    senha: str = Field(min_length=6)

class UsuarioSchema(BaseModel):
    id: int
    nome: str
    email: str
    telefone: Optional[str] = None
    remotejid: Optional[str] = None
    tipo_usuario: TipoUsuario
    ativo: bool
    data_cadastro: Optional[datetime] = None
    ultimo_acesso: Optional[datetime] = None
    status_assinatura: Optional[StatusAssinatura] = None
    data_cancelamento: Optional[datetime] = None
    motivo_cancelamento: Optional[str] = None
    data_expiracao_assinatura: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class UpdateUsuarioSchema(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=2)
    email: Optional[EmailStr] = None
    telefone: Optional[str] = Field(default=None, pattern=PADRAO_TELEFONE)

class AlterarSenhaSchema(BaseModel):
    senha_atual: str = Field(validation_alias=AliasChoices("senhaAtual", "senha_atual"))
    nova_senha: str = Field(min_length=6, validation_alias=AliasChoices("novaSenha", "nova_senha"))

class AdminCriarUsuarioSchema(BaseModel):
    nome: str = Field(min_length=2)
    email: EmailStr
    senha: str = Field(min_length=6)
    telefone: Optional[str] = None
    tipo_usuario: TipoUsuario = TipoUsuario.NORMAL
    ativo: bool = True

class AdminAtualizarUsuarioSchema(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=2)
    email: Optional[EmailStr] = None
    telefone: Optional[str] = None
    senha: Optional[str] = Field(default=None, min_length=6)
    tipo_usuario: Optional[TipoUsuario] = None
    ativo: Optional[bool] = None

class StatusUsuarioSchema(BaseModel):
    ativo: bool
