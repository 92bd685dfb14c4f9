# main.py
import logging
import os
import shutil
import uuid
from typing import List, Dict, Any, Optional

from fastapi import Body, Depends, FastAPI, File, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from backend import EXPORT_FILES, DataManager
from config import get_settings
from exceptions import (
    CircularRuleError,
    DataAlchemistError,
    InvalidRuleError,
    RowIndexError,
    RuleSuggestionError,
    UnknownEntityError,
)

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

# Enable CORS for frontend communication
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global DataManager instance to persist data across requests
global_data_manager: Optional[DataManager] = None


def get_data_manager() -> DataManager:
    global global_data_manager
    if global_data_manager is None:
        global_data_manager = DataManager(settings)
    return global_data_manager


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message, **extra})


@app.exception_handler(CircularRuleError)
async def circular_rule_handler(request, exc: CircularRuleError):
    return _error(409, str(exc), cycles=exc.cycles)


@app.exception_handler(DataAlchemistError)
async def data_alchemist_error_handler(request, exc: DataAlchemistError):
    if isinstance(exc, (UnknownEntityError, RowIndexError)):
        return _error(404, str(exc))
    if isinstance(exc, InvalidRuleError):
        return _error(400, str(exc))
    if isinstance(exc, RuleSuggestionError):
        return _error(502, str(exc))
    return _error(400, str(exc))


def save_upload_file(upload_file: UploadFile, upload_dir: str) -> str:
    os.makedirs(upload_dir, exist_ok=True)
    file_id = uuid.uuid4().hex[:8]
    file_path = os.path.join(upload_dir, f"{file_id}_{os.path.basename(upload_file.filename or 'upload.csv')}")
    with open(file_path, "wb") as buffer:
        shutil.copyfileobj(upload_file.file, buffer)
    return file_path


def _state(dm: DataManager, **extra) -> Dict[str, Any]:
    return {
        "status": "success",
        **extra,
        **dm.validation_report(),
    }


# Accept any subset of the three files; each replaces its batch
@app.post("/upload")
async def upload_files(
    clients: Optional[UploadFile] = File(None),
    workers: Optional[UploadFile] = File(None),
    tasks: Optional[UploadFile] = File(None),
    dm: DataManager = Depends(get_data_manager),
):
    uploads = {"clients": clients, "workers": workers, "tasks": tasks}
    loaded = []
    for entity, upload in uploads.items():
        if upload is None:
            continue
        try:
            path = save_upload_file(upload, dm.settings.upload_dir)
            dm.load_file(path, entity=entity)
        except (ValueError, OSError) as e:
            logger.warning("failed to read upload", extra={"entity": entity, "upload": upload.filename})
            return _error(400, f"Failed to read {entity} file: {e}")
        loaded.append(entity)

    if not loaded:
        return _error(400, "No files uploaded")
    return _state(dm, loaded=loaded)


@app.get("/data")
async def get_data(dm: DataManager = Depends(get_data_manager)):
    return _state(dm, data={"clients": dm.clients, "workers": dm.workers, "tasks": dm.tasks})


@app.put("/data/{entity}")
async def replace_batch(entity: str, rows: List[Dict[str, Any]] = Body(...), dm: DataManager = Depends(get_data_manager)):
    dm.set_batch(entity, rows)
    return _state(dm, rows=dm.batch(entity))


@app.patch("/data/{entity}/{row}")
async def edit_cell(entity: str, row: int, request: dict = Body(...), dm: DataManager = Depends(get_data_manager)):
    field = request.get("field")
    if not field:
        return _error(400, "No field provided")
    updated = dm.update_cell(entity, row, field, request.get("value", ""))
    return _state(dm, row=updated)


@app.post("/data/{entity}/rows")
async def add_row(entity: str, dm: DataManager = Depends(get_data_manager)):
    index = dm.add_row(entity)
    return _state(dm, index=index)


@app.delete("/data/{entity}/{row}")
async def delete_row(entity: str, row: int, dm: DataManager = Depends(get_data_manager)):
    removed = dm.delete_row(entity, row)
    return _state(dm, removed=removed)


@app.get("/validate")
async def validate(dm: DataManager = Depends(get_data_manager)):
    return _state(dm)


@app.get("/rules")
async def list_rules(dm: DataManager = Depends(get_data_manager)):
    return {"status": "success", "rules": dm.rules_as_dicts(), "cycles": dm.current_cycles()}


@app.post("/rules")
async def add_rule(request: dict = Body(...), dm: DataManager = Depends(get_data_manager)):
    rule = dm.add_rule({"type": request.get("type", "coRun"), "tasks": request.get("tasks", [])})
    return {"status": "success", "rule": rule.to_dict(), "rules": dm.rules_as_dicts()}


@app.delete("/rules/{index}")
async def remove_rule(index: int, dm: DataManager = Depends(get_data_manager)):
    removed = dm.remove_rule(index)
    return {"status": "success", "removed": removed.to_dict(), "rules": dm.rules_as_dicts()}


# Natural language rule: heuristic parser first, AI fallback when configured
@app.post("/rules/parse")
async def add_rule_from_text(request: dict = Body(...), dm: DataManager = Depends(get_data_manager)):
    user_input = request.get("input", "")
    if not user_input:
        return _error(400, "No input provided")
    rule = dm.add_rule_from_text(user_input)
    return {"status": "success", "rule": rule.to_dict(), "rules": dm.rules_as_dicts()}


@app.get("/rules/suggestions")
async def heuristic_suggestions(dm: DataManager = Depends(get_data_manager)):
    return {"status": "success", "suggestions": dm.suggest_rules()}


@app.post("/rule-suggestions")
async def ai_rule_suggestions(dm: DataManager = Depends(get_data_manager)):
    return {"status": "success", "suggestions": dm.suggest_rules_with_ai()}


@app.post("/rules/accept")
async def accept_rules(request: dict = Body(...), dm: DataManager = Depends(get_data_manager)):
    result = dm.accept_rules(request.get("rules", []))
    return {"status": "success", **result, "rules": dm.rules_as_dicts()}


@app.get("/cycles")
async def cycles(dm: DataManager = Depends(get_data_manager)):
    return {"status": "success", "cycles": dm.current_cycles()}


@app.get("/assignments")
async def assignments(dm: DataManager = Depends(get_data_manager)):
    return {"status": "success", "assignments": [a.to_dict() for a in dm.assignments()]}


@app.post("/reset")
async def reset(dm: DataManager = Depends(get_data_manager)):
    dm.reset()
    return _state(dm)


# Download a single export artifact
@app.get("/export/{filename}")
async def export_file(filename: str, valid_only: bool = False, dm: DataManager = Depends(get_data_manager)):
    if filename not in EXPORT_FILES:
        return _error(404, "File not found")
    return Response(
        content=dm.export_bytes(filename, valid_only=valid_only),
        media_type=EXPORT_FILES[filename],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# Export processed data to the export directory
@app.post("/export")
async def export_data(dm: DataManager = Depends(get_data_manager)):
    output_dir = dm.export_all()
    files = [{"name": name, "path": os.path.join(output_dir, name)} for name in EXPORT_FILES]
    return {"status": "success", "export_directory": output_dir, "files": files}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
