from typing import Optional

from fastapi import Depends
from sqlmodel import Session

from reunite.config import SEMANTIC, Settings, get_settings
from reunite.db.db import get_session
from reunite.matching import MatchingEngine, get_scorer
from reunite.matching.embeddings import EmbeddingClient
from reunite.utils.mailer import Mailer, ResendMailer


async def get_mailer(settings: Settings = Depends(get_settings)):
    mailer = ResendMailer.from_settings(settings)
    try:
        yield mailer
    finally:
        await mailer.aclose()


async def get_embedding_client(settings: Settings = Depends(get_settings)):
    client: Optional[EmbeddingClient] = None
    if settings.match_strategy == SEMANTIC:
        client = EmbeddingClient.from_settings(settings)
    try:
        yield client
    finally:
        if client is not None:
            await client.aclose()


def get_matching_engine(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
    embedding_client: Optional[EmbeddingClient] = Depends(get_embedding_client),
) -> MatchingEngine:
    return MatchingEngine(session, get_scorer(settings, embedding_client), mailer, settings)
