from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class FormaPagamentoSchema(BaseModel):
    nome: str = Field(min_length=1, max_length=100)
    descricao: Optional[str] = None
    icone: Optional[str] = None
    cor: Optional[str] = None

class FormaPagamentoSchemaUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=1, max_length=100)
    descricao: Optional[str] = None
    icone: Optional[str] = None
    cor: Optional[str] = None
    ativo: Optional[bool] = None

class FormaPagamentoSchemaId(BaseModel):
    id: int
    nome: str
    descricao: Optional[str] = None
    icone: Optional[str] = None
    cor: Optional[str] = None
    usuario_id: Optional[int] = None
    global_: bool = Field(serialization_alias="global")
    ativo: bool
    data_criacao: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
