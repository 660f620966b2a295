import os
import logging
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from starlette.middleware.base import BaseHTTPMiddleware
from jinja2 import Environment, FileSystemLoader
from phone_assistant.core import config
from phone_assistant.services.assistant_service import AssistantService
from phone_assistant.services.config_store import JsonConfigStore
from phone_assistant.services.export_service import ExportService
from phone_assistant.services.layout_service import LayoutSettings
from phone_assistant.services.pdf_service import PDFService
from phone_assistant.routers import assistant, views

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
)

app = FastAPI(title="TA Konfigurator")

# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if config.ORIGIN.startswith("https"):
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # Content Security Policy
        csp = (
            "default-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: blob:;"
        )
        response.headers["Content-Security-Policy"] = csp
        return response

app.add_middleware(SecurityHeadersMiddleware)

# Templates
templates_dir = os.path.join(os.path.dirname(__file__), "templates")
jinja_env = Environment(loader=FileSystemLoader(templates_dir))

def render(name, **ctx):
    template = jinja_env.get_template(name)
    return HTMLResponse(template.render(**ctx))

# Services
layout_settings = LayoutSettings()
assistant_service = AssistantService(JsonConfigStore(config.CONFIG_FILE), layout_settings)
export_service = ExportService(jinja_env, layout_settings)
pdf_service = PDFService()

# App State
app.state.assistant_service = assistant_service
app.state.export_service = export_service
app.state.pdf_service = pdf_service
app.state.render = render

# Include Routers
app.include_router(views.router)
app.include_router(assistant.router, prefix="/api/assistant")

if __name__ == "__main__":
    import uvicorn
    import argparse

    parser = argparse.ArgumentParser(description="Run the phone assistant configurator")
    parser.add_argument("--port", type=int, default=8000, help="Port to run the service on")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to bind to")
    args = parser.parse_args()

    uvicorn.run(app, host=args.host, port=args.port)
