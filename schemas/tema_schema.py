import re
from pydantic import BaseModel, Field, field_validator
from typing import Optional

PADRAO_HEX = re.compile(r"^#[0-9A-Fa-f]{6}$")
PADRAO_HSL = re.compile(r"^\d{1,3}(\.\d+)?\s+\d{1,3}(\.\d+)?%\s+\d{1,3}(\.\d+)?%$")


def cor_valida(cor: str) -> bool:
    if not cor or not isinstance(cor, str):
        return False
    cor = cor.strip()
    return bool(PADRAO_HEX.match(cor) or PADRAO_HSL.match(cor))


class ConfigTemaSchema(BaseModel):
    background: str
    foreground: str
    primary: str
    primaryForeground: str
    secondary: str
    secondaryForeground: str
    muted: str
    mutedForeground: str
    accent: str
    accentForeground: str
    border: str
    card: str
    cardForeground: str
    destructive: str
    destructiveForeground: str

    @field_validator("*")
    @classmethod
    def validar_cor(cls, valor: str) -> str:
        if not cor_valida(valor):
            raise ValueError(f"Cor inválida: '{valor}'. Use #RRGGBB ou 'H S% L%'")
        return valor.strip()

class TemaSchema(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    lightConfig: ConfigTemaSchema
    darkConfig: ConfigTemaSchema
    isDefault: bool = False

class TemaSchemaUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    lightConfig: Optional[ConfigTemaSchema] = None
    darkConfig: Optional[ConfigTemaSchema] = None
    isDefault: Optional[bool] = None
