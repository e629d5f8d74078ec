# oddsdesk/main.py
from fastapi import FastAPI

from .core.config import get_settings
from .core.logging import configure_logging
from .routers import health, odds, picks, tracker

configure_logging(get_settings().log_level)

app = FastAPI(title="OddsDesk API", version="0.1.0")

# Routers
app.include_router(health.router)
app.include_router(odds.router)
app.include_router(tracker.router)
app.include_router(picks.router)

@app.get("/")
def root():
    return {"service": "oddsdesk"}
