from .games import router as games_router
from .settlement import router as settlement_router
from .report import router as report_router

__all__ = ["games_router", "settlement_router", "report_router"]
