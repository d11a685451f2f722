from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.db.postgres import get_session_factory
from app.services.query_analyzer import QueryAnalyzer, get_query_analyzer
from app.services.record_store import RecordStore, SqlRecordStore
from app.services.search_service import SearchService
from app.services.strategy_executor import StrategyExecutor


def get_current_user_id(x_user_id: str | None = Header(None)) -> str:
    user_id = x_user_id or settings.primary_user_id
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def get_record_store(
    user_id: str = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> RecordStore:
    return SqlRecordStore(session_factory, user_id)


def get_search_service(
    store: RecordStore = Depends(get_record_store),
    analyzer: QueryAnalyzer = Depends(get_query_analyzer),
) -> SearchService:
    return SearchService(analyzer, StrategyExecutor(store))
