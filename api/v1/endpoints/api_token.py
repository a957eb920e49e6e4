import logging
from typing import Any, Dict, List

from fastapi import APIRouter, status, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.deps import get_current_user, get_session
from core.security import check_password, generate_api_token, mascarar_token
from core.utils import handle_db_exceptions
from models.api_token_model import ApiTokenModel
from models.usuario_model import UsuarioModel
from schemas.api_token_schema import ApiTokenSchema, ApiTokenSchemaUpdate, ApiTokenSchemaId, RotacionarTokenSchema

logger = logging.getLogger(__name__)

router = APIRouter()


def token_mascarado(token: ApiTokenModel) -> Dict[str, Any]:
    dados = ApiTokenSchemaId.model_validate(token).model_dump()
    dados["token"] = mascarar_token(token.token)
    return dados


async def _token_do_usuario(session: AsyncSession, token_id: int, usuario: UsuarioModel) -> ApiTokenModel:
    result = await session.execute(select(ApiTokenModel).where(ApiTokenModel.id == token_id))
    token = result.scalars().one_or_none()
    if not token:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Token não encontrado")
    if token.usuario_id != usuario.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acesso negado")
    return token


@router.get('')
async def get_tokens(
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    async with db as session:
        query = (
            select(ApiTokenModel)
            .where(ApiTokenModel.usuario_id == usuario_logado.id)
            .order_by(ApiTokenModel.master.desc(), ApiTokenModel.id)
        )
        result = await session.execute(query)
        return [token_mascarado(token) for token in result.scalars().all()]


@router.get('/{token_id}')
async def get_token(
    token_id: int,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    async with db as session:
        return token_mascarado(await _token_do_usuario(session, token_id, usuario_logado))


@router.post('', status_code=status.HTTP_201_CREATED, response_model=ApiTokenSchemaId)
async def post_token(
    token: ApiTokenSchema,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    novo_token = ApiTokenModel(
        usuario_id=usuario_logado.id,
        token=generate_api_token(),
        nome=token.nome,
        descricao=token.descricao,
        data_expiracao=token.data_expiracao,
        ativo=token.ativo,
        master=False,
        rotacionavel=False,
    )
    async with db as session:
        try:
            session.add(novo_token)
            await session.commit()
            await session.refresh(novo_token)
        except Exception as e:
            await handle_db_exceptions(session, e)

    logger.info(f"Token de API {novo_token.id} criado para o usuário {usuario_logado.id}")
    # única vez em que o token completo é devolvido
    return novo_token


@router.put('/{token_id}')
async def put_token(
    token_id: int,
    token: ApiTokenSchemaUpdate,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    async with db as session:
        token_up = await _token_do_usuario(session, token_id, usuario_logado)
        atualizacao = token.model_dump(exclude_unset=True)
        if token_up.master and atualizacao.get("ativo") is False:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="O MasterToken não pode ser desativado")

        for campo, valor in atualizacao.items():
            if campo == "data_expiracao" or valor is not None:
                setattr(token_up, campo, valor)
        try:
            await session.commit()
            await session.refresh(token_up)
            return token_mascarado(token_up)
        except Exception as e:
            await handle_db_exceptions(session, e)


@router.delete('/{token_id}', status_code=status.HTTP_204_NO_CONTENT)
async def delete_token(
    token_id: int,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    async with db as session:
        token_del = await _token_do_usuario(session, token_id, usuario_logado)
        if token_del.master:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="O MasterToken não pode ser excluído")
        try:
            await session.delete(token_del)
            await session.commit()
        except Exception as e:
            await handle_db_exceptions(session, e)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post('/{token_id}/rotate')
async def rotacionar_token(
    token_id: int,
    dados: RotacionarTokenSchema,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    async with db as session:
        token_rot = await _token_do_usuario(session, token_id, usuario_logado)
        if not token_rot.master or not token_rot.rotacionavel:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Só é possível rotacionar o MasterToken")
        if not dados.senha:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Senha obrigatória para rotacionar o token")
        if not check_password(dados.senha, usuario_logado.senha):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Senha incorreta")

        token_rot.token = generate_api_token()
        try:
            await session.commit()
        except Exception as e:
            await handle_db_exceptions(session, e)

    logger.info(f"MasterToken do usuário {usuario_logado.id} rotacionado")
    return {"token": token_rot.token}
