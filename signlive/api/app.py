from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import info
from .ws import router as ws_router

app = FastAPI(title="SignLive API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(info.router)
app.include_router(ws_router)
