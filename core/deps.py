import logging
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.auth import oauth2_schema, usuario_id_do_token
from core.database import Session
from core.permissoes import eh_super_admin, exigir_super_admin
from core.utils import agora, com_fuso
from models.api_token_model import ApiTokenModel
from models.usuario_model import UsuarioModel

logger = logging.getLogger(__name__)

CHAVE_USUARIO = "usuario_id"
CHAVE_ADMIN_ORIGINAL = "admin_original_id"
CHAVE_PERSONIFICANDO = "personificando"


@dataclass
class ContextoAutenticacao:
    usuario: UsuarioModel
    admin_original: Optional[UsuarioModel] = None
    via_api_key: bool = False

    @property
    def personificando(self) -> bool:
        return self.admin_original is not None

    @property
    def usuario_autorizacao(self) -> UsuarioModel:
        # quem responde pelas permissões administrativas durante a personificação
        return self.admin_original or self.usuario


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    session: AsyncSession = Session()
    try:
        yield session
    finally:
        await session.close()


def _nao_autenticado(detalhe: str = "Não autenticado") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detalhe)


async def _buscar_usuario(db: AsyncSession, usuario_id) -> Optional[UsuarioModel]:
    if usuario_id is None:
        return None
    result = await db.execute(select(UsuarioModel).where(UsuarioModel.id == int(usuario_id)))
    return result.scalars().one_or_none()


async def _autenticar_api_key(db: AsyncSession, apikey: str) -> ContextoAutenticacao:
    result = await db.execute(select(ApiTokenModel).where(ApiTokenModel.token == apikey))
    token: Optional[ApiTokenModel] = result.scalars().one_or_none()

    if not token:
        raise _nao_autenticado("Token de API inválido")
    if not token.ativo:
        raise _nao_autenticado("Token de API inativo")
    if token.data_expiracao and com_fuso(token.data_expiracao) < agora():
        raise _nao_autenticado("Token de API expirado")

    usuario = await _buscar_usuario(db, token.usuario_id)
    if not usuario:
        raise _nao_autenticado("Usuário não encontrado")
    if not usuario.ativo:
        raise _nao_autenticado("Usuário inativo")
    return ContextoAutenticacao(usuario=usuario, via_api_key=True)


async def _autenticar_sessao(request: Request, db: AsyncSession) -> Optional[ContextoAutenticacao]:
    sessao = request.session
    if CHAVE_USUARIO not in sessao:
        return None

    if sessao.get(CHAVE_PERSONIFICANDO):
        admin = await _buscar_usuario(db, sessao.get(CHAVE_ADMIN_ORIGINAL))
        if not admin or not eh_super_admin(admin):
            logger.warning("Sessão de personificação inválida: administrador original ausente ou sem privilégios")
            sessao.clear()
            raise _nao_autenticado("Sessão de personificação inválida")

        personificado = await _buscar_usuario(db, sessao.get(CHAVE_USUARIO))
        if not personificado:
            logger.warning(f"Usuário personificado {sessao.get(CHAVE_USUARIO)} não existe mais, encerrando sessão")
            sessao.clear()
            raise _nao_autenticado("Usuário personificado não encontrado")
        return ContextoAutenticacao(usuario=personificado, admin_original=admin)

    usuario = await _buscar_usuario(db, sessao.get(CHAVE_USUARIO))
    if not usuario:
        sessao.clear()
        raise _nao_autenticado("Usuário não encontrado")
    if not usuario.ativo:
        sessao.clear()
        raise _nao_autenticado("Usuário inativo")
    return ContextoAutenticacao(usuario=usuario)


async def get_contexto_autenticacao(
    request: Request,
    db: AsyncSession = Depends(get_session),
    apikey: Optional[str] = Header(default=None),
    token: Optional[str] = Depends(oauth2_schema),
) -> ContextoAutenticacao:
    """Autenticação combinada: header apikey, depois cookie de sessão, depois Bearer JWT."""
    if apikey:
        contexto = await _autenticar_api_key(db, apikey)
    else:
        contexto = await _autenticar_sessao(request, db)
        if contexto is None and token:
            usuario = await _buscar_usuario(db, usuario_id_do_token(token))
            if not usuario or not usuario.ativo:
                raise _nao_autenticado("Token inválido ou expirado")
            contexto = ContextoAutenticacao(usuario=usuario)

    if contexto is None:
        raise _nao_autenticado()

    request.state.contexto = contexto
    return contexto


async def get_current_user(contexto: ContextoAutenticacao = Depends(get_contexto_autenticacao)) -> UsuarioModel:
    return contexto.usuario


async def require_super_admin(contexto: ContextoAutenticacao = Depends(get_contexto_autenticacao)) -> ContextoAutenticacao:
    exigir_super_admin(contexto.usuario_autorizacao)
    return contexto
