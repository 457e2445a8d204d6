# Run from project root: uvicorn navigator.main:app --reload

import logging

from fastapi import FastAPI

from navigator.api.routes import router

logging.basicConfig(level=logging.INFO)


app = FastAPI(title="Knowledge Navigator")
app.include_router(router)
