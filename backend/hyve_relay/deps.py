from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .storage import RelayState

def setup_cors(app: FastAPI, origins: List[str]):
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

def get_state(request: Request) -> RelayState:
    return request.app.state.relay
