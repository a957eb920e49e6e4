from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ApiTokenSchema(BaseModel):
    nome: str = Field(min_length=1, max_length=100)
    descricao: Optional[str] = None
    data_expiracao: Optional[datetime] = None
    ativo: bool = True

class ApiTokenSchemaUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=1, max_length=100)
    descricao: Optional[str] = None
    data_expiracao: Optional[datetime] = None
    ativo: Optional[bool] = None

class RotacionarTokenSchema(BaseModel):
    senha: Optional[str] = None

class ApiTokenSchemaId(BaseModel):
    id: int
    usuario_id: int
    token: str
    nome: str
    descricao: Optional[str] = None
    data_criacao: Optional[datetime] = None
    data_expiracao: Optional[datetime] = None
    ativo: bool
    master: bool
    rotacionavel: bool

    model_config = ConfigDict(from_attributes=True)
