from __future__ import annotations

from fastapi import FastAPI

from api.rules import router as rules_router
from common.payroll_rules.config import get_settings
from common.payroll_rules.logging_config import setup_logging


def create_app() -> FastAPI:
    setup_logging(get_settings().log_level)
    app = FastAPI(title="Payroll rules")
    app.include_router(rules_router)
    return app
