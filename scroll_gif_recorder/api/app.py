import asyncio

import pydantic
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, RedirectResponse

from scroll_gif_recorder.__about__ import __version__
from scroll_gif_recorder.config import get_config
from scroll_gif_recorder.console import console
from scroll_gif_recorder.models import RecordingInput, RunResult
from scroll_gif_recorder.recorder import GIF_CONTENT_TYPE, artifact_name, run_recording
from scroll_gif_recorder.storage import LocalKeyValueStore

app = FastAPI(title="scroll-gif-recorder", version=__version__)

# one browser recording at a time
RECORDING_LOCK = asyncio.Lock()

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allows all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)


@app.get("/")
async def get():
    return {"name": "scroll-gif-recorder", "version": __version__}


@app.post("/recordings", response_model=RunResult)
async def create_recording(recording_input: RecordingInput):
    """Record a page and return the urls of the stored gifs"""
    config = get_config()
    async with RECORDING_LOCK:
        console.log(f"recording {recording_input.url}")
        result = await run_recording(recording_input, config)

    if not result.succeeded:
        raise HTTPException(status_code=502, detail=result.error)
    return result


@app.get("/recordings/{hostname}/{variant}")
async def get_recording(hostname: str, variant: str):
    """Serve a stored gif for a previously recorded host.

    Local files are streamed back directly, S3 objects are redirected to.
    """
    try:
        recording_input = RecordingInput(url=f"https://{hostname}")
        name = artifact_name(recording_input, variant)
    except (pydantic.ValidationError, KeyError):
        raise HTTPException(
            status_code=404, detail=f"no {variant} recording for {hostname}"
        )

    store = get_config().key_value_store
    if isinstance(store, LocalKeyValueStore):
        file_path = store.get_file_path(name)
        if file_path is None:
            raise HTTPException(status_code=404, detail=f"{name} not found")
        return FileResponse(file_path, media_type=GIF_CONTENT_TYPE)

    if await store.get_value(name) is None:
        raise HTTPException(status_code=404, detail=f"{name} not found")

    return RedirectResponse(
        url=store.get_public_url(name),
        status_code=307,  # Temporary redirect
        headers={"Cache-Control": "public, max-age=86400"},
    )
