"""comptable FastAPI Server - HTTP API for web front-ends."""

from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from comptable import __version__
from comptable.config_loader import get_api_keys, load_analysis_config
from comptable.logging import get_logger
from comptable.models.config import AnalysisConfig
from comptable.models.output import AnalysisResult, CellAnswer, CompetitorDescription
from comptable.pipeline.executor import PipelineError, build_cell_resolver, run_analysis
from comptable.prompts import get_available_prompts

logger = get_logger("comptable.api")

app = FastAPI(
    title="comptable API",
    description="Crowdsourced competitor comparison tables from multiple LLMs",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class AnalyzeRequest(BaseModel):
    target: str


class CellRequest(BaseModel):
    competitor: str
    criterion: str


class DescribeRequest(BaseModel):
    competitor: str
    context: str = ""


def get_config() -> AnalysisConfig:
    return load_analysis_config()


def get_keys() -> dict:
    return get_api_keys()


def _require(keys: dict, *names: str) -> None:
    missing = [name for name in names if not keys.get(name)]
    if missing:
        raise HTTPException(
            status_code=503,
            detail=f"Missing API key(s): {', '.join(missing)}",
        )


@app.get("/")
async def root():
    return {"name": "comptable", "version": __version__}


@app.get("/health")
async def health(keys: dict = Depends(get_keys)):
    return {
        "status": "ok",
        "openrouter_configured": bool(keys.get("openrouter")),
        "groq_configured": bool(keys.get("groq")),
    }


@app.get("/api/prompts")
async def list_prompts():
    return get_available_prompts()


@app.post("/api/analyze", response_model=AnalysisResult)
async def analyze(
    request: AnalyzeRequest,
    config: AnalysisConfig = Depends(get_config),
    keys: dict = Depends(get_keys),
):
    """Run one analysis; per-model failures are reported inside raw_responses."""
    if not request.target.strip():
        raise HTTPException(status_code=400, detail="Target must not be empty")
    _require(keys, "openrouter", "groq")

    try:
        return await run_analysis(
            request.target,
            keys["openrouter"],
            keys["groq"],
            config=config,
        )
    except PipelineError as e:
        logger.error("analysis_failed", target=request.target, error=str(e))
        raise HTTPException(status_code=502, detail=str(e))


async def _with_resolver(config: AnalysisConfig, groq_key: str, call):
    resolver = build_cell_resolver(groq_key, config)
    try:
        return await call(resolver)
    finally:
        await resolver.client.close()


@app.post("/api/cell", response_model=CellAnswer)
async def cell(
    request: CellRequest,
    config: AnalysisConfig = Depends(get_config),
    keys: dict = Depends(get_keys),
):
    """Answer one cell; failures come back as an answer with error=true."""
    _require(keys, "groq")
    return await _with_resolver(
        config,
        keys["groq"],
        lambda resolver: resolver.resolve_cell(request.competitor, request.criterion),
    )


@app.post("/api/describe", response_model=CompetitorDescription)
async def describe(
    request: DescribeRequest,
    config: AnalysisConfig = Depends(get_config),
    keys: dict = Depends(get_keys),
):
    _require(keys, "groq")
    context: Optional[str] = request.context or request.competitor
    return await _with_resolver(
        config,
        keys["groq"],
        lambda resolver: resolver.describe_competitor(request.competitor, context),
    )
