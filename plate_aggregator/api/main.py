from fastapi import FastAPI, Query

from plate_aggregator.application.plate_recognition_service import PlateRecognitionService
from plate_aggregator.core.config import settings


def create_app(service: PlateRecognitionService) -> FastAPI:
    """
    Superficie de sólo lectura sobre la sesión actual. Los registros se
    devuelven como copias serializadas; los recortes nunca se exponen.
    """
    app = FastAPI(title=settings.app_name)
    app.state.service = service

    @app.get("/health")
    def health_check():
        return {"status": "ok", "env": settings.app_env}

    @app.get("/plates/best")
    def best_plates(limit: int = Query(settings.best_detections_limit, ge=0)):
        return [r.to_dict() for r in app.state.service.best_detections(limit)]

    @app.get("/plates/stats")
    def plate_stats():
        return app.state.service.stats()

    @app.delete("/plates")
    def clear_plates():
        app.state.service.clear()
        return {"status": "cleared"}

    return app
