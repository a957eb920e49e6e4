"""
Lembretes do usuário.

Convenção de horário: ``data_lembrete`` é gravado em UTC sem fuso. Entradas
com offset (ex.: ``-03:00``) são convertidas para UTC; entradas sem offset são
consideradas horário de São Paulo. Na saída o valor volta com deslocamento fixo
de -3h e sufixo ``-03:00``.
"""
from datetime import datetime, time, timedelta, timezone as tz
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, status, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.deps import get_current_user, get_session
from core.utils import FUSO_SP, handle_db_exceptions
from models.lembrete_model import LembreteModel
from models.usuario_model import UsuarioModel
from schemas.lembrete_schema import LembreteSchema, LembreteSchemaUpdate

router = APIRouter()

OFFSET_SP = tz(timedelta(hours=-3))
NOME_FUSO = "America/Sao_Paulo"


def para_armazenamento(data: datetime) -> datetime:
    if data.tzinfo is None:
        data = FUSO_SP.localize(data)
    return data.astimezone(tz.utc).replace(tzinfo=None)


def para_exibicao(data: Optional[datetime]) -> Optional[str]:
    if data is None:
        return None
    if data.tzinfo is None:
        data = data.replace(tzinfo=tz.utc)
    return data.astimezone(OFFSET_SP).isoformat()


def serializar_lembrete(lembrete: LembreteModel) -> Dict[str, Any]:
    return {
        "id": lembrete.id,
        "usuario_id": lembrete.usuario_id,
        "titulo": lembrete.titulo,
        "descricao": lembrete.descricao,
        "data_lembrete": para_exibicao(lembrete.data_lembrete),
        "data_criacao": para_exibicao(lembrete.data_criacao),
        "concluido": lembrete.concluido,
        "timezone": NOME_FUSO,
    }


def _ler_data(valor: str, fim_do_dia: bool = False) -> datetime:
    data = datetime.fromisoformat(valor)
    if len(valor) == 10 and fim_do_dia:
        data = datetime.combine(data.date(), time.max)
    return para_armazenamento(data)


async def _lembrete_do_usuario(session: AsyncSession, lembrete_id: int, usuario: UsuarioModel) -> LembreteModel:
    result = await session.execute(
        select(LembreteModel).where(LembreteModel.id == lembrete_id, LembreteModel.usuario_id == usuario.id)
    )
    lembrete = result.scalars().one_or_none()
    if not lembrete:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lembrete não encontrado")
    return lembrete


@router.get('')
async def get_lembretes(
    concluido: Optional[bool] = Query(default=None),
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    async with db as session:
        query = select(LembreteModel).where(LembreteModel.usuario_id == usuario_logado.id)
        if concluido is not None:
            query = query.where(LembreteModel.concluido.is_(concluido))
        result = await session.execute(query.order_by(LembreteModel.data_lembrete))
        return [serializar_lembrete(lembrete) for lembrete in result.scalars().all()]


@router.get('/calendar')
async def get_calendario(
    start_date: Optional[str] = Query(default=None),
    end_date: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    if not start_date or not end_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Datas de início e fim são obrigatórias")
    try:
        inicio = _ler_data(start_date)
        fim = _ler_data(end_date, fim_do_dia=True)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Datas inválidas")

    async with db as session:
        query = (
            select(LembreteModel)
            .where(
                LembreteModel.usuario_id == usuario_logado.id,
                LembreteModel.data_lembrete >= inicio,
                LembreteModel.data_lembrete <= fim,
            )
            .order_by(LembreteModel.data_lembrete)
        )
        result = await session.execute(query)
        return [serializar_lembrete(lembrete) for lembrete in result.scalars().all()]


@router.get('/{lembrete_id}')
async def get_lembrete(
    lembrete_id: int,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    async with db as session:
        return serializar_lembrete(await _lembrete_do_usuario(session, lembrete_id, usuario_logado))


@router.post('', status_code=status.HTTP_201_CREATED)
async def post_lembrete(
    lembrete: LembreteSchema,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    novo_lembrete = LembreteModel(
        usuario_id=usuario_logado.id,
        titulo=lembrete.titulo,
        descricao=lembrete.descricao,
        data_lembrete=para_armazenamento(lembrete.data_lembrete),
        concluido=lembrete.concluido,
    )
    async with db as session:
        try:
            session.add(novo_lembrete)
            await session.commit()
            await session.refresh(novo_lembrete)
            return serializar_lembrete(novo_lembrete)
        except Exception as e:
            await handle_db_exceptions(session, e)


@router.put('/{lembrete_id}')
async def put_lembrete(
    lembrete_id: int,
    lembrete: LembreteSchemaUpdate,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    async with db as session:
        lembrete_up = await _lembrete_do_usuario(session, lembrete_id, usuario_logado)
        for campo, valor in lembrete.model_dump(exclude_unset=True).items():
            if valor is None:
                continue
            if campo == "data_lembrete":
                valor = para_armazenamento(valor)
            setattr(lembrete_up, campo, valor)
        try:
            await session.commit()
            await session.refresh(lembrete_up)
            return serializar_lembrete(lembrete_up)
        except Exception as e:
            await handle_db_exceptions(session, e)


@router.delete('/{lembrete_id}')
async def delete_lembrete(
    lembrete_id: int,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    async with db as session:
        lembrete_del = await _lembrete_do_usuario(session, lembrete_id, usuario_logado)
        try:
            await session.delete(lembrete_del)
            await session.commit()
        except Exception as e:
            await handle_db_exceptions(session, e)
    return {"message": "Lembrete excluído com sucesso"}
