"""
Conversão das entradas livres de transações (tipo, data e valor) para os tipos
do domínio. Qualquer valor fora dos formatos aceitos gera ValueError, que os
schemas pydantic devolvem como erro de validação (400).
"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Union

from models.enums import TipoTransacao, StatusTransacao

SINONIMOS_TIPO = {
    "receita": TipoTransacao.RECEITA,
    "entrada": TipoTransacao.RECEITA,
    "income": TipoTransacao.RECEITA,
    "recebimento": TipoTransacao.RECEITA,
    "despesa": TipoTransacao.DESPESA,
    "saida": TipoTransacao.DESPESA,
    "saída": TipoTransacao.DESPESA,
    "expense": TipoTransacao.DESPESA,
    "gasto": TipoTransacao.DESPESA,
    "pagamento": TipoTransacao.DESPESA,
}

FORMATOS_DATA = ("%Y-%m-%d", "%d/%m/%Y")


def normalizar_tipo(valor: Union[str, TipoTransacao]) -> TipoTransacao:
    if isinstance(valor, TipoTransacao):
        return valor
    if not isinstance(valor, str):
        raise ValueError("Tipo de transação deve ser texto")

    tipo = SINONIMOS_TIPO.get(valor.strip().lower())
    if tipo is None:
        raise ValueError(f"Tipo de transação inválido: '{valor}'. Use Receita ou Despesa")
    return tipo


def normalizar_status(valor: Union[str, StatusTransacao]) -> StatusTransacao:
    if isinstance(valor, StatusTransacao):
        return valor
    for status in StatusTransacao:
        if status.value.lower() == str(valor).strip().lower():
            return status
    raise ValueError(f"Status inválido: '{valor}'")


def normalizar_data(valor: Union[str, date]) -> date:
    """Aceita apenas YYYY-MM-DD ou DD/MM/YYYY."""
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    if not isinstance(valor, str):
        raise ValueError("Data deve ser texto no formato YYYY-MM-DD ou DD/MM/YYYY")

    texto = valor.strip()
    for formato in FORMATOS_DATA:
        try:
            return datetime.strptime(texto, formato).date()
        except ValueError:
            continue
    raise ValueError(f"Data inválida: '{valor}'. Use YYYY-MM-DD ou DD/MM/YYYY")


def normalizar_valor(valor: Union[str, int, float, Decimal]) -> Decimal:
    if isinstance(valor, bool):
        raise ValueError("Valor inválido")
    try:
        convertido = Decimal(str(valor).strip().replace(",", ".")) if isinstance(valor, str) else Decimal(str(valor))
    except InvalidOperation:
        raise ValueError(f"Valor inválido: '{valor}'")
    if not convertido.is_finite() or convertido <= 0:
        raise ValueError("Valor deve ser maior que zero")
    return convertido.quantize(Decimal("0.01"))


def normalizar_id_opcional(valor) -> Union[int, None]:
    """IDs enviados como string, vazios ou 0 viram None (atribuição automática)."""
    if valor is None or valor == "":
        return None
    try:
        convertido = int(valor)
    except (TypeError, ValueError):
        raise ValueError(f"ID inválido: '{valor}'")
    return convertido or None
