from typing import AsyncGenerator

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from leave_service.core.config import settings

_client: AsyncIOMotorClient | None = None


def get_client() -> AsyncIOMotorClient:
    """
    싱글톤 패턴으로 MongoDB 클라이언트 생성.
    """
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(settings.MONGODB_URI)
    return _client


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None


async def get_database() -> AsyncGenerator[AsyncIOMotorDatabase, None]:
    """
    FastAPI 의존성 주입용.
    """
    yield get_client()[settings.MONGODB_DB_NAME]
