from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from phone_assistant.services.export_service import NODE_TYPE_LABELS

router = APIRouter()

@router.get("/", response_class=HTMLResponse)
async def index(request: Request):
    service = request.app.state.assistant_service
    export_service = request.app.state.export_service
    repo = service.repository
    layout = service.layout()

    return request.app.state.render(
        "index.html",
        request=request,
        config=service.config,
        outline=[(repo.find(node_id), box.depth) for node_id, box in layout.boxes.items()],
        root=repo.root(),
        labels=NODE_TYPE_LABELS,
        flowchart=export_service.render_svg(service.config, layout),
    )
