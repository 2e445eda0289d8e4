from __future__ import annotations

import logging
from typing import Optional, Tuple

from fastapi import Body, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from burgersim.engine import EngineConfig, calculate_game_result, initialize_game_state, process_day
from burgersim.levels import get_level_config, level_summary, list_levels
from burgersim.models import GameState, LevelConfig
from burgersim.storage import (
    action_from_dict,
    append_history_csv,
    data_dir,
    delete_state,
    level_to_dict,
    load_result,
    load_state,
    save_result,
    save_state,
    session_lock,
    state_to_dict,
)

logger = logging.getLogger(__name__)


class BadRequest(Exception):
    pass


def _error(status: int, message: str, code: Optional[str] = None) -> JSONResponse:
    body = {"success": False, "error": message}
    if code:
        body["code"] = code
    return JSONResponse(body, status_code=status)


def _session_params(user_id: object, level_id: object) -> Tuple[str, LevelConfig]:
    uid = str(user_id or "").strip()
    if not uid:
        raise BadRequest("userId is required")
    if level_id is None or str(level_id).strip() == "":
        raise BadRequest("levelId is required")
    try:
        level = get_level_config(int(level_id))  # type: ignore[arg-type]
    except (KeyError, TypeError, ValueError):
        raise BadRequest(f"Unknown level: {level_id}") from None
    return uid, level


def _ensure_state(user_id: str, level: LevelConfig) -> GameState:
    try:
        state = load_state(user_id, level.id)
    except ValueError:
        # Corrupt state file: start the level over.
        logger.exception("unreadable state for user=%s level=%s, starting fresh", user_id, level.id)
        state = None
    if state is None:
        state = initialize_game_state(level)
        save_state(state, user_id)
    return state


def create_app(cfg: Optional[EngineConfig] = None) -> FastAPI:
    app = FastAPI(title="Burger Supply Chain Simulator API")

    # Allow Vite dev server or other local frontends.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    data_dir()
    engine_cfg = cfg or EngineConfig()

    @app.get("/api/levels")
    def api_levels():
        return {"levels": [level_summary(lv) for lv in list_levels()]}

    @app.get("/api/levels/{level_id}")
    def api_level(level_id: int):
        try:
            level = get_level_config(level_id)
        except KeyError:
            return _error(404, f"Unknown level: {level_id}")
        return level_to_dict(level)

    @app.post("/api/game/load")
    def api_load(payload: dict = Body(default={})):
        try:
            user_id, level = _session_params(payload.get("userId"), payload.get("levelId"))
        except BadRequest as e:
            return _error(400, str(e))
        with session_lock(user_id, level.id):
            state = _ensure_state(user_id, level)
        return {"success": True, "gameState": state_to_dict(state), "gameOver": bool(state.game_over)}

    @app.post("/api/game/process-day")
    def api_process_day(payload: dict = Body(default={})):
        try:
            user_id, level = _session_params(payload.get("userId"), payload.get("levelId"))
        except BadRequest as e:
            return _error(400, str(e))
        action_raw = payload.get("action")
        if action_raw is not None and not isinstance(action_raw, dict):
            return _error(400, "action must be an object")

        try:
            with session_lock(user_id, level.id):
                state = _ensure_state(user_id, level)
                outcome = process_day(state, action_from_dict(action_raw), level, engine_cfg)
                if not outcome.ok:
                    err = outcome.error
                    return _error(400, err.message if err else "Day rejected", outcome.code)

                new_state = outcome.state
                save_state(new_state, user_id)
                append_history_csv(user_id, level.id, new_state.history[-1])
                if new_state.game_over:
                    save_result(calculate_game_result(new_state, level, user_id))
        except Exception:
            logger.exception("process-day failed for user=%s level=%s", user_id, level.id)
            return _error(500, "Failed to process day")

        return {"success": True, "gameState": state_to_dict(new_state), "gameOver": bool(new_state.game_over)}

    @app.delete("/api/game/reset-level")
    def api_reset_level(
        payload: dict = Body(default={}),
        user_id_q: Optional[str] = Query(default=None, alias="userId"),
        level_id_q: Optional[int] = Query(default=None, alias="levelId"),
    ):
        try:
            user_id, level = _session_params(
                payload.get("userId", user_id_q),
                payload.get("levelId", level_id_q),
            )
        except BadRequest as e:
            return _error(400, str(e))
        with session_lock(user_id, level.id):
            removed = delete_state(user_id, level.id)
        return {"success": True, "removed": removed}

    @app.get("/api/game/result")
    def api_result(
        user_id: Optional[str] = Query(default=None, alias="userId"),
        level_id: Optional[int] = Query(default=None, alias="levelId"),
    ):
        try:
            uid, level = _session_params(user_id, level_id)
        except BadRequest as e:
            return _error(400, str(e))
        result = load_result(uid, level.id)
        if result is None:
            return _error(404, "No finished game for this level")
        return {"success": True, "result": result}

    return app


app = create_app()
