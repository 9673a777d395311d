"""API router for version 1."""
from fastapi import APIRouter

from vocabquiz.api.v1.endpoints import games, stats, vocabulary_review


api_router = APIRouter()
api_router.include_router(vocabulary_review.router)
api_router.include_router(stats.router)
api_router.include_router(games.router)
