from typing import Optional
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from .config import WatcherSettings
from .metrics import scrape_metrics
from .schemas import StatusView
from .watcher import BillingWatcher


def create_app(watcher: Optional[BillingWatcher] = None) -> FastAPI:
    app = FastAPI(title="GCP Billing Watcher API", version="1.0.0")
    app.state.watcher = watcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def startup_event():
        if app.state.watcher is None:
            app.state.watcher = BillingWatcher(WatcherSettings.from_env())
        app.state.watcher.start()

    @app.on_event("shutdown")
    def shutdown_event():
        if app.state.watcher is not None:
            app.state.watcher.shutdown()

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    @app.get("/api/billing", response_model=StatusView)
    def get_billing(request: Request):
        return request.app.state.watcher.status()

    @app.post("/api/billing/refresh", response_model=StatusView)
    def refresh_billing(request: Request):
        return request.app.state.watcher.refresh()

    @app.get("/api/billing/console")
    def open_console(request: Request):
        url = request.app.state.watcher.console_url()
        if url is None:
            raise HTTPException(status_code=404, detail="GCP project ID is not configured")
        return RedirectResponse(url)

    @app.get("/metrics")
    def metrics(request: Request):
        output, ctype = scrape_metrics(request.app.state.watcher)
        return Response(content=output, media_type=ctype)

    return app


app = create_app()
