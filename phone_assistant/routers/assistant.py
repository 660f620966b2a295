import os
import uuid
from typing import Any, Dict
from fastapi import APIRouter, Request, Form, Body, HTTPException
from fastapi.responses import FileResponse, PlainTextResponse, Response
from starlette.background import BackgroundTask
from phone_assistant.core import config
from phone_assistant.core.errors import (
    AssistantConfigError, InvalidStructureError, NodeNotFoundError,
)
from phone_assistant.models.assistant import AssistantNode
from phone_assistant.services.export_service import safe_filename
from phone_assistant.services.pdf_service import PdfRenderError, PdfRendererMissingError

router = APIRouter()

def raise_http(e: AssistantConfigError):
    if isinstance(e, NodeNotFoundError):
        raise HTTPException(404, str(e))
    if isinstance(e, InvalidStructureError):
        raise HTTPException(422, str(e))
    raise HTTPException(400, str(e))

def dump(model) -> Any:
    return model.model_dump(mode="json", by_alias=True)

@router.get("/config")
async def get_config(request: Request):
    service = request.app.state.assistant_service
    return dump(service.config)

@router.put("/config/name")
async def update_praxis_name(request: Request, praxis_name: str = Form(...)):
    service = request.app.state.assistant_service
    return {"success": True, "config": dump(service.update_praxis_name(praxis_name))}

@router.post("/reset")
async def reset_config(request: Request):
    service = request.app.state.assistant_service
    return {"success": True, "config": dump(service.reset())}

@router.post("/nodes/{node_id}/children")
async def add_child(node_id: str, request: Request):
    service = request.app.state.assistant_service
    try:
        node = service.add_child(node_id)
    except AssistantConfigError as e:
        raise_http(e)
    return {"success": True, "node": dump(node)}

@router.post("/nodes/{node_id}/insert-before")
async def insert_before(node_id: str, request: Request):
    service = request.app.state.assistant_service
    try:
        node = service.insert_before(node_id)
    except AssistantConfigError as e:
        raise_http(e)
    return {"success": True, "node": dump(node)}

@router.put("/nodes/{node_id}")
async def update_node(node_id: str, request: Request, node: AssistantNode):
    service = request.app.state.assistant_service
    if node.id != node_id:
        raise HTTPException(400, "Node id does not match URL")
    try:
        updated = service.update_node(node)
    except AssistantConfigError as e:
        raise_http(e)
    return {"success": True, "node": dump(updated)}

@router.delete("/nodes/{node_id}")
async def delete_node(node_id: str, request: Request):
    service = request.app.state.assistant_service
    try:
        removed = service.delete_node(node_id)
    except AssistantConfigError as e:
        raise_http(e)
    return {"success": True, "removed": removed}

@router.get("/nodes/{node_id}/path")
async def get_node_path(node_id: str, request: Request):
    service = request.app.state.assistant_service
    try:
        path = service.get_path(node_id)
    except AssistantConfigError as e:
        raise_http(e)
    return {"path": [dump(n) for n in path]}

@router.get("/layout")
async def get_layout(request: Request):
    service = request.app.state.assistant_service
    return service.layout().model_dump(mode="json")

@router.post("/import")
async def import_config(request: Request, payload: Dict[str, Any] = Body(...)):
    service = request.app.state.assistant_service
    try:
        imported = service.import_config(payload)
    except AssistantConfigError as e:
        raise_http(e)
    return {"success": True, "config": dump(imported)}

@router.get("/export/json")
async def export_json(request: Request):
    service = request.app.state.assistant_service
    filename = f"TA_{safe_filename(service.config.praxis_name)}.json"
    return Response(
        service.export_json(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@router.get("/export/text")
async def export_text(request: Request):
    service = request.app.state.assistant_service
    export_service = request.app.state.export_service
    filename = f"TA_{safe_filename(service.config.praxis_name)}.txt"
    return PlainTextResponse(
        export_service.export_text(service.config),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@router.get("/export/svg")
async def export_svg(request: Request):
    service = request.app.state.assistant_service
    export_service = request.app.state.export_service
    svg = export_service.render_svg(service.config, service.layout())
    return Response(svg, media_type="image/svg+xml")

@router.get("/export/pdf")
async def export_pdf(request: Request):
    service = request.app.state.assistant_service
    export_service = request.app.state.export_service
    pdf_service = request.app.state.pdf_service

    postscript = export_service.render_postscript(service.config, service.layout())
    output_path = os.path.join(config.EXPORT_DIR, f"{uuid.uuid4().hex}.pdf")
    try:
        await pdf_service.render_pdf(postscript, output_path)
    except PdfRendererMissingError as e:
        raise HTTPException(503, str(e))
    except PdfRenderError as e:
        if os.path.exists(output_path):
            os.remove(output_path)
        raise HTTPException(500, f"PDF export failed: {e}")

    filename = f"TA_{safe_filename(service.config.praxis_name)}.pdf"
    return FileResponse(
        output_path,
        media_type="application/pdf",
        filename=filename,
        background=BackgroundTask(os.remove, output_path),
    )
