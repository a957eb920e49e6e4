from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional


class LembreteSchema(BaseModel):
    titulo: str = Field(min_length=1, max_length=255)
    descricao: Optional[str] = None
    data_lembrete: datetime
    concluido: bool = False

class LembreteSchemaUpdate(BaseModel):
    titulo: Optional[str] = Field(default=None, min_length=1, max_length=255)
    descricao: Optional[str] = None
    data_lembrete: Optional[datetime] = None
    concluido: Optional[bool] = None
