"""FastAPI application exposing rubric scoring.

Routes:
    POST /api/rtass/score/section   score one rubric section
    POST /api/rtass/score           score every section and build a scorecard
    GET  /api/rtass/rubrics         list rubric summaries, or load one with ?file=
    GET  /api/health                liveness check

Successful responses are wrapped as ``{"success": true, "data": ...}``.

Example:
    ```python
    import uvicorn
    from rtass.api import create_app
    from rtass.config import load_settings

    app = create_app(load_settings("rtass.yaml"))
    uvicorn.run(app, port=8000)
    ```
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request

from rtass import __version__
from rtass.config import ScoringSettings, build_retry_config, configure_logging
from rtass.judge import AsyncJudgeProvider, create_judge
from rtass.rubrics.library import RubricLibrary
from rtass.rubrics.validation import loads_strict
from rtass.scoring.scorecard import ScorecardRequest, assemble_scorecard
from rtass.scoring.service import ScoringRequest, score_section

from .exceptions import InvalidRequestError, register_exception_handlers

logger = logging.getLogger(__name__)

JudgeFactory = Callable[[], AsyncJudgeProvider]


def success_response(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


async def read_json_body(request: Request) -> Any:
    """Parse the request body as JSON.

    Raises:
        InvalidRequestError: If the body is not valid JSON, including bodies
            with ``NaN`` or ``Infinity`` numbers.
    """
    body = await request.body()
    try:
        return loads_strict(body)
    except ValueError as e:
        raise InvalidRequestError(f"Request body is not valid JSON: {e}") from e


def create_app(
    settings: ScoringSettings | None = None,
    judge_factory: JudgeFactory | None = None,
    library: RubricLibrary | None = None,
) -> FastAPI:
    """Create the scoring application.

    Args:
        settings: Service settings. Defaults are used when omitted.
        judge_factory: Returns the judge for one request. Defaults to a new
            provider built from ``settings.judge``.
        library: Rubric catalog. Defaults to ``settings.rubric_dir``.
    """
    settings = settings or ScoringSettings()
    configure_logging(settings.log_level, settings.log_file)

    app = FastAPI(title="RTASS Scoring", version=__version__)
    app.state.settings = settings
    app.state.judge_factory = judge_factory or (lambda: create_judge(settings.judge))
    app.state.library = library or RubricLibrary(settings.rubric_dir)
    app.state.retry_config = build_retry_config(settings)

    register_exception_handlers(app)

    @app.post("/api/rtass/score/section")
    async def score_section_route(request: Request) -> dict[str, Any]:
        scoring_request = ScoringRequest.from_dict(await read_json_body(request))
        async with app.state.judge_factory() as judge:
            result = await score_section(
                scoring_request, judge, retry_config=app.state.retry_config
            )
        return success_response(result.to_dict())

    @app.post("/api/rtass/score")
    async def score_rubric_route(request: Request) -> dict[str, Any]:
        scorecard_request = ScorecardRequest.from_dict(await read_json_body(request))
        async with app.state.judge_factory() as judge:
            scorecard = await assemble_scorecard(
                scorecard_request.rubric,
                scorecard_request.transcript_id,
                scorecard_request.transcript,
                judge,
                retry_config=app.state.retry_config,
                supplemental_material=scorecard_request.supplemental_material,
                incident_id=scorecard_request.incident_id,
            )
        return success_response(scorecard.to_dict())

    @app.get("/api/rtass/rubrics")
    async def rubrics_route(file: str | None = None) -> dict[str, Any]:
        rubric_library: RubricLibrary = app.state.library
        if file is not None:
            return success_response(rubric_library.load(file).to_dict())
        return success_response([s.to_dict() for s in rubric_library.list_rubrics()])

    @app.get("/api/health")
    async def health_route() -> dict[str, Any]:
        return {"status": "ok", "version": __version__}

    logger.info("RTASS scoring API created (rubric_dir=%s)", settings.rubric_dir)
    return app
