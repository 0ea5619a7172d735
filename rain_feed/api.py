"""
HTTP API for the Rain feed (FastAPI).

The identity service authenticates the caller upstream and passes the
user id in the X-User-Id header.
"""

from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from rain_feed.constants import DEFAULT_HISTORY_LIMIT
from rain_feed.errors import FeedError, ValidationError
from rain_feed.models import ArticleStatus, FeedPage, ReplenishResult
from rain_feed.service import RainFeedService
from util.logging_util import log_feed_request, setup_logger

logger = setup_logger(__name__)


class RateRequest(BaseModel):
    rating: Any = None
    annotation: Optional[Any] = None


class PositionRequest(BaseModel):
    feed_item_id: Optional[int] = None


class RerollRequest(BaseModel):
    from_feed_item_id: Optional[int] = None


class AddArticleRequest(BaseModel):
    url: Optional[str] = None


class ArticleStatusRequest(BaseModel):
    status: str


def get_service(request: Request) -> RainFeedService:
    return request.app.state.service


def current_user(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


def feed_page_payload(page: FeedPage, show_explore_flag: bool) -> dict:
    payload = {
        "items": jsonable_encoder(page.items),
        "showExploreFlag": show_explore_flag,
    }
    if page.has_more is not None:
        payload["hasMore"] = page.has_more
        payload["queueEmpty"] = page.queue_empty
    if page.has_before is not None:
        payload["hasBefore"] = page.has_before
    return payload


def replenish_payload(result: ReplenishResult) -> dict:
    payload = {"replenished": result.replenished, "queueSize": result.queue_size}
    if result.replenished:
        payload["added"] = result.added
    if result.reason is not None:
        payload["reason"] = result.reason.value
    return payload


async def feed_error_handler(request: Request, exc: FeedError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [f"{'.'.join(str(x) for x in e.get('loc', []))}: {e.get('msg', '')}" for e in exc.errors()]
    logger.debug(f"Request validation error on {request.url.path}: {details}")
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": str(exc)})


def create_app(service: RainFeedService) -> FastAPI:
    """Build the FastAPI app around an already wired service."""
    app = FastAPI(title="Rain Feed API")
    app.state.service = service

    app.add_exception_handler(FeedError, feed_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # Feed

    @app.get("/feed")
    def read_feed(
        before: Optional[int] = None,
        after: Optional[int] = None,
        from_id: Optional[int] = Query(None, alias="from"),
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        log_feed_request(logger, user_id, "GET /feed", f"before={before} after={after} from={from_id}")
        settings = service.settings.get_or_create(user_id)
        page = service.reader.read(user_id, before=before, after=after, from_id=from_id)
        return feed_page_payload(page, settings.show_explore_flag)

    @app.post("/feed/replenish")
    def replenish_feed(
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        result = service.replenisher.replenish(user_id)
        log_feed_request(logger, user_id, "POST /feed/replenish", f"replenished={result.replenished}")
        return replenish_payload(result)

    @app.post("/feed/reroll")
    def reroll_feed(
        body: Optional[RerollRequest] = None,
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        from_feed_item_id = body.from_feed_item_id if body is not None else None
        service.reroller.reroll(user_id, from_feed_item_id)
        return {"success": True}

    @app.put("/feed/position")
    def save_position(
        body: PositionRequest,
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        service.positions.save(user_id, body.feed_item_id)
        return {"success": True}

    @app.get("/feed/history")
    def feed_history(
        limit: int = DEFAULT_HISTORY_LIMIT,
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        settings = service.settings.get_or_create(user_id)
        history = service.reader.history(user_id, limit)
        return {
            "items": jsonable_encoder(history.items),
            "resumeFeedItemId": history.resume_feed_item_id,
            "showExploreFlag": settings.show_explore_flag,
        }

    # Chunks

    @app.post("/chunks/{chunk_id}/rate")
    def rate_chunk(
        chunk_id: int,
        body: RateRequest,
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        rating = service.ratings.rate(user_id, chunk_id, body.rating, body.annotation)
        return jsonable_encoder(rating)

    @app.get("/chunks/{chunk_id}/context")
    def chunk_context(
        chunk_id: int,
        stream: bool = False,
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        if stream:
            return StreamingResponse(service.context.stream(user_id, chunk_id), media_type="text/plain")
        return {"context": service.context.generate(user_id, chunk_id)}

    # Accuracy and settings

    @app.get("/accuracy")
    def accuracy(
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        report = service.accuracy.report(user_id)
        return {
            "overallMae": report.overall_mae,
            "exploreMae": report.explore_mae,
            "exploitMae": report.exploit_mae,
            "totalRatings": report.total_ratings,
            "exploreRatings": report.explore_ratings,
            "exploitRatings": report.exploit_ratings,
            "timeline": {
                "overall": jsonable_encoder(report.overall_timeline),
                "explore": jsonable_encoder(report.explore_timeline),
                "exploit": jsonable_encoder(report.exploit_timeline),
            },
        }

    @app.get("/settings")
    def get_settings(
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        return jsonable_encoder(service.settings.get_or_create(user_id))

    @app.put("/settings")
    def update_settings(
        payload: dict,
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        return jsonable_encoder(service.settings.update(user_id, payload))

    # Articles

    @app.get("/articles")
    def list_articles(
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        return jsonable_encoder(service.articles.list_articles(user_id))

    @app.post("/articles")
    def add_article(
        body: AddArticleRequest,
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        return jsonable_encoder(service.articles.add_article(user_id, body.url))

    @app.get("/articles/{article_id}")
    def get_article(
        article_id: int,
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        return jsonable_encoder(service.articles.get_article(user_id, article_id))

    @app.patch("/articles/{article_id}")
    def set_article_status(
        article_id: int,
        body: ArticleStatusRequest,
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        try:
            status = ArticleStatus(body.status)
        except ValueError:
            raise ValidationError(f"Unknown status: {body.status}") from None
        return jsonable_encoder(service.articles.set_status(user_id, article_id, status))

    @app.delete("/articles/{article_id}")
    def delete_article(
        article_id: int,
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        service.articles.delete_article(user_id, article_id)
        return {"success": True}

    @app.get("/document")
    def document(
        url: str,
        user_id: str = Depends(current_user),
        service: RainFeedService = Depends(get_service),
    ):
        return {"content": service.fetcher.fetch_markdown(url)}

    return app
