import logging

from fastapi import APIRouter, status, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import auth, generate_token_access
from core.deps import (
    CHAVE_ADMIN_ORIGINAL,
    CHAVE_PERSONIFICANDO,
    CHAVE_USUARIO,
    ContextoAutenticacao,
    get_contexto_autenticacao,
    get_current_user,
    get_session,
)
from core.permissoes import eh_super_admin
from core.personificacao import encerrar_sessao_personificacao
from core.security import check_password, generate_hash
from core.utils import agora, com_fuso, handle_db_exceptions
from core.usuarios import buscar_usuario_por_email, criar_usuario_completo
from models.enums import StatusAssinatura
from models.usuario_model import UsuarioModel
from schemas.usuario_schema import (
    AlterarSenhaSchema,
    LoginDataSchema,
    RegistroUsuarioSchema,
    UpdateUsuarioSchema,
    UsuarioSchema,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get('/profile', response_model=UsuarioSchema)
async def get_perfil(usuario_logado: UsuarioModel = Depends(get_current_user)):
    return usuario_logado


@router.put('/profile', response_model=UsuarioSchema)
async def put_perfil(
    dados: UpdateUsuarioSchema,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    atualizacao = dados.model_dump(exclude_unset=True)
    async with db as session:
        try:
            if atualizacao.get("email") and atualizacao["email"].lower() != usuario_logado.email:
                existente = await buscar_usuario_por_email(session, atualizacao["email"])
                if existente:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email já está em uso.")
                atualizacao["email"] = atualizacao["email"].lower()

            for campo, valor in atualizacao.items():
                setattr(usuario_logado, campo, valor)
            session.add(usuario_logado)
            await session.commit()
            await session.refresh(usuario_logado)
            return usuario_logado
        except HTTPException:
            raise
        except Exception as e:
            await handle_db_exceptions(session, e)


@router.put('/password')
async def alterar_senha(
    dados: AlterarSenhaSchema,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    if not check_password(dados.senha_atual, usuario_logado.senha):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Senha atual incorreta")

    async with db as session:
        try:
            usuario_logado.senha = generate_hash(dados.nova_senha)
            session.add(usuario_logado)
            await session.commit()
        except Exception as e:
            await handle_db_exceptions(session, e)

    return {"message": "Senha alterada com sucesso"}


# --- autenticação (/auth) ---

router_auth = APIRouter()


def assinatura_expirada(usuario: UsuarioModel) -> bool:
    if eh_super_admin(usuario) or not usuario.data_expiracao_assinatura:
        return False
    return com_fuso(usuario.data_expiracao_assinatura) < agora()


def iniciar_sessao_web(request: Request, usuario_id: int) -> None:
    request.session.clear()
    request.session[CHAVE_USUARIO] = usuario_id


@router_auth.post('/register', status_code=status.HTTP_201_CREATED, response_model=UsuarioSchema)
async def registrar(dados: RegistroUsuarioSchema, request: Request, db: AsyncSession = Depends(get_session)):
    async with db as session:
        if await buscar_usuario_por_email(session, dados.email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email já está em uso.")
        try:
            usuario = await criar_usuario_completo(
                session,
                nome=dados.nome,
                email=dados.email,
                senha=dados.senha,
                telefone=dados.telefone,
            )
        except Exception as e:
            await handle_db_exceptions(session, e)

    iniciar_sessao_web(request, usuario.id)
    return usuario


@router_auth.post('/login')
async def login(dados: LoginDataSchema, request: Request, db: AsyncSession = Depends(get_session)):
    async with db as session:
        usuario = await auth(email=dados.email, senha=dados.senha, db=session)
        if not usuario:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Usuário ou senha incorretos ou inexistentes!"
            )

        if assinatura_expirada(usuario):
            usuario.ativo = False
            usuario.status_assinatura = StatusAssinatura.EXPIRADA
            await session.commit()
            logger.info(f"Login recusado: assinatura do usuário {usuario.id} expirada")
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={
                    "detail": "Sua assinatura expirou. Entre em contato com o suporte para reativar sua conta.",
                    "subscriptionExpired": True,
                },
            )

        if not usuario.ativo:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Usuário inativo")

        usuario.ultimo_acesso = agora()
        await session.commit()
        await session.refresh(usuario)

    iniciar_sessao_web(request, usuario.id)
    return {
        "user": UsuarioSchema.model_validate(usuario),
        "access_token": generate_token_access(sub=usuario.id),
        "token_type": "bearer",
    }


@router_auth.post('/logout')
async def logout(request: Request, db: AsyncSession = Depends(get_session)):
    if request.session.get(CHAVE_PERSONIFICANDO):
        async with db as session:
            await encerrar_sessao_personificacao(
                session, int(request.session[CHAVE_ADMIN_ORIGINAL]), int(request.session[CHAVE_USUARIO])
            )
    request.session.clear()
    return {"message": "Logout realizado com sucesso"}


@router_auth.get('/verify')
async def verificar(contexto: ContextoAutenticacao = Depends(get_contexto_autenticacao)):
    return {"authenticated": True, "user": UsuarioSchema.model_validate(contexto.usuario)}


@router_auth.get('/me')
async def get_me(contexto: ContextoAutenticacao = Depends(get_contexto_autenticacao)):
    original = contexto.admin_original
    return {
        **UsuarioSchema.model_validate(contexto.usuario).model_dump(),
        "isImpersonating": contexto.personificando,
        "originalAdmin": {"id": original.id, "nome": original.nome, "email": original.email} if original else None,
    }
