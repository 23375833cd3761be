"""Administrative client management."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from idx_ai_gateway.api.dependencies import get_session, require_admin
from idx_ai_gateway.schemas.requests import ClientCreate, ClientUpdate
from idx_ai_gateway.tenancy.client_manager import ClientManager

clients_router = APIRouter(dependencies=[Depends(require_admin)])


@clients_router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(body: ClientCreate, session: AsyncSession = Depends(get_session)):
    client = await ClientManager(session).create(body.model_dump())
    return {"message": "Client created successfully", "clientId": client.id, "apiKey": client.api_key}


@clients_router.get("")
async def list_clients(session: AsyncSession = Depends(get_session)):
    clients = await ClientManager(session).list_all()
    return [client.to_dict() for client in clients]


@clients_router.get("/{client_id}")
async def get_client(client_id: str, session: AsyncSession = Depends(get_session)):
    client = await ClientManager(session).get(client_id)
    return client.to_dict()


@clients_router.put("/{client_id}")
async def update_client(client_id: str, body: ClientUpdate, session: AsyncSession = Depends(get_session)):
    data = body.model_dump(exclude_unset=True, exclude={"regenerate_api_key"})
    client = await ClientManager(session).update(client_id, data, regenerate_api_key=body.regenerate_api_key)
    return {"message": "Client updated successfully", "client": client.to_dict()}


@clients_router.delete("/{client_id}")
async def delete_client(client_id: str, session: AsyncSession = Depends(get_session)):
    await ClientManager(session).delete(client_id)
    return {"message": "Client deleted successfully"}
