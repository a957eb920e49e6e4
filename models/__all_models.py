from models.usuario_model import UsuarioModel
from models.carteira_model import CarteiraModel
from models.categoria_model import CategoriaModel
from models.forma_pagamento_model import FormaPagamentoModel
from models.transacao_model import TransacaoModel
from models.api_token_model import ApiTokenModel
from models.lembrete_model import LembreteModel
from models.sessao_admin_model import SessaoAdminModel
from models.historico_cancelamento_model import HistoricoCancelamentoModel
from models.tema_model import TemaModel


from core.configs import settings

# Coletar metadatas
metadata = settings.DBBaseModel.metadata

__all__ = [
    "UsuarioModel", "CarteiraModel", "CategoriaModel", "FormaPagamentoModel",
    "TransacaoModel", "ApiTokenModel", "LembreteModel", "SessaoAdminModel",
    "HistoricoCancelamentoModel", "TemaModel", "metadata"
]
