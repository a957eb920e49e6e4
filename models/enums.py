# Enumerations
from enum import Enum


class TipoTransacao(str, Enum):
    RECEITA = "Receita"
    DESPESA = "Despesa"

class StatusTransacao(str, Enum):
    EFETIVADA = "Efetivada"
    PENDENTE = "Pendente"
    AGENDADA = "Agendada"
    CANCELADA = "Cancelada"

class TipoUsuario(str, Enum):
    NORMAL = "normal"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

class StatusAssinatura(str, Enum):
    ATIVA = "ativa"
    CANCELADA = "cancelada"
    EXPIRADA = "expirada"

class TipoCancelamento(str, Enum):
    VOLUNTARIO = "voluntario"
    ADMINISTRATIVO = "administrativo"
    EXPIRACAO = "expiracao"

class TipoNotificacao(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"
