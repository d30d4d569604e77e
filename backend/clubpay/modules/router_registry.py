"""Central router registry for module-oriented composition."""
from __future__ import annotations

from fastapi import FastAPI

from clubpay.modules.compensation.router import ROUTERS as COMPENSATION_ROUTERS

ALL_ROUTERS = COMPENSATION_ROUTERS


def include_all_routers(app: FastAPI) -> None:
    for router in ALL_ROUTERS:
        app.include_router(router)
