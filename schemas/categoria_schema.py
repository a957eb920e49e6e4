from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional

from core.normalizacao import normalizar_tipo
from models.enums import TipoTransacao


class CategoriaSchema(BaseModel):
    nome: str = Field(min_length=1, max_length=100)
    tipo: TipoTransacao = TipoTransacao.DESPESA
    cor: Optional[str] = None
    icone: Optional[str] = None
    descricao: Optional[str] = None

    @field_validator("tipo", mode="before")
    @classmethod
    def validar_tipo(cls, valor):
        return normalizar_tipo(valor)

class CategoriaSchemaUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=1, max_length=100)
    tipo: Optional[TipoTransacao] = None
    cor: Optional[str] = None
    icone: Optional[str] = None
    descricao: Optional[str] = None

    @field_validator("tipo", mode="before")
    @classmethod
    def validar_tipo(cls, valor):
        return None if valor is None else normalizar_tipo(valor)

class CategoriaSchemaId(BaseModel):
    id: int
    nome: str
    tipo: TipoTransacao
    cor: Optional[str] = None
    icone: Optional[str] = None
    descricao: Optional[str] = None
    usuario_id: Optional[int] = None
    global_: bool = Field(serialization_alias="global")

    model_config = ConfigDict(from_attributes=True)
