import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sms_categorizer.api.routes import categorize, messages, patterns, rules
from sms_categorizer.core import settings
from sms_categorizer.logger import get_logger, setup_logging
from sms_categorizer.services.categorization import CategorizationPipeline
from sms_categorizer.services.matching import FuzzyPatternMatcher
from sms_categorizer.services.storage import PatternStore, RuleStore

logger = get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        rule_store = RuleStore(os.path.join(settings.DATA_DIR, "rules.json"))
        pattern_store = PatternStore(os.path.join(settings.DATA_DIR, "patterns.json"))
        matcher = FuzzyPatternMatcher(
            min_confidence_threshold=settings.get_pattern_min_confidence(),
            fuzzy_text_threshold=settings.get_pattern_fuzzy_text_threshold(),
        )

        app.state.pipeline = CategorizationPipeline(
            rule_store=rule_store,
            pattern_store=pattern_store,
            matcher=matcher,
        )

        logger.info(
            "Services initialized: %d rule(s), %d pattern(s).",
            len(rule_store.get_all_rules()),
            len(pattern_store.get_all_patterns()),
        )
        yield
        logger.info("Service shutting down.")

    app = FastAPI(title="SMS Categorizer", lifespan=lifespan)

    app.include_router(categorize.router)
    app.include_router(rules.router)
    app.include_router(patterns.router)
    app.include_router(messages.router)

    return app


app = create_app()
