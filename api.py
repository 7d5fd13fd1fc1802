"""
FastAPI REST API for the Auction Filter Translator.

Converts natural language vehicle searches into auction filter objects.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query, Request

from filter_translator import FilterTranslator, TranslatorConfig
from filter_translator.core.exceptions import (
    CompletionAuthError,
    CompletionRateLimitError,
    CompletionServiceError,
    CompletionTimeoutError,
    FilterTranslatorError,
    InvalidFilterError,
    MalformedCompletionError,
)

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Response status per translation error
ERROR_STATUS_CODES = {
    CompletionTimeoutError: 504,
    CompletionAuthError: 502,
    CompletionRateLimitError: 503,
    CompletionServiceError: 502,
    MalformedCompletionError: 502,
    InvalidFilterError: 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = TranslatorConfig.from_env()
    app.state.translator = FilterTranslator.from_config(config)
    logger.info(
        "Filter translator ready (model=%s, validate_output=%s)",
        config.llm.model,
        config.validate_output,
    )
    yield


app = FastAPI(
    title="Auction Filter Translator API",
    description="Convert natural language vehicle searches to auction filters",
    version="1.0.0",
    lifespan=lifespan,
)


def get_translator(request: Request) -> FilterTranslator:
    """Return the translator built at start-up."""
    return request.app.state.translator


def error_status_code(error: FilterTranslatorError) -> int:
    """Map a translation error to a response status code."""
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return 500


@app.get("/")
async def translate_query(
    humanPrompt: str = Query(..., description="Natural language vehicle search"),
    translator: FilterTranslator = Depends(get_translator),
) -> Dict[str, Any]:
    """
    Convert a natural language vehicle search into an auction filter.

    Returns `{}` for blank input or requests that are not vehicle searches.
    """
    logger.info("humanPrompt: %s", humanPrompt)

    try:
        return await translator.translate(humanPrompt)
    except FilterTranslatorError as e:
        status_code = error_status_code(e)
        logger.error("Filter translation failed with %s: %s", status_code, e)
        raise HTTPException(status_code=status_code, detail=f"Filter translation failed: {e}")


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("API_PORT", "8000"))
    host = os.getenv("API_HOST", "0.0.0.0")

    uvicorn.run(app, host=host, port=port)
