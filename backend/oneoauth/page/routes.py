"""
OAuth2 登录路由
跳转到平台授权页面，并在回调时换取用户
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import RedirectResponse

from ..exceptions import (
    NotFoundError,
    OAuth2Error,
    TransportError,
    UserDeniedAuthorizationError,
)
from ..oauth.models import CallbackQuery, user_profile
from ..oauth.registry import OAuth2Registry
from ..utils.security import constant_time_compare, generate_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/oauth2")

STATE_COOKIE = "oneoauth_state"


def get_registry(request: Request) -> OAuth2Registry:
    """获取应用启动时创建的注册表"""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="注册表尚未初始化")
    return registry


def error_status(error: OAuth2Error) -> int:
    """错误对应的 HTTP 状态码"""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, UserDeniedAuthorizationError):
        return 403
    if isinstance(error, TransportError):
        return 502
    return 400


def _http_error(error: OAuth2Error) -> HTTPException:
    return HTTPException(
        status_code=error_status(error),
        detail={"kind": error.kind.value, "message": error.message},
    )


def _state_cookie(platform: str, identifier: Optional[str]) -> str:
    return f"{STATE_COOKIE}_{platform}_{identifier or platform}"


@router.get("/{platform}/authorize")
def authorize(
    platform: str,
    identifier: Optional[str] = None,
    registry: OAuth2Registry = Depends(get_registry),
):
    """跳转到平台授权页面"""
    state = generate_state()
    try:
        url = registry.authorize_url(platform, identifier, state)
    except OAuth2Error as e:
        raise _http_error(e) from e

    response = RedirectResponse(url, status_code=307)
    response.set_cookie(
        _state_cookie(platform, identifier),
        state,
        max_age=600,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/{platform}/callback")
def callback(
    platform: str,
    request: Request,
    response: Response,
    identifier: Optional[str] = None,
    registry: OAuth2Registry = Depends(get_registry),
) -> dict[str, Any]:
    """授权回调，返回平台用户信息"""
    params = {key: value for key, value in request.query_params.items() if key != "identifier"}
    query = CallbackQuery(params)

    # 验证 state
    cookie = _state_cookie(platform, identifier)
    expected = request.cookies.get(cookie)
    if query.code and (not expected or not query.state or not constant_time_compare(expected, query.state)):
        logger.warning(f"[{platform}:{identifier or platform}] state 校验失败")
        raise HTTPException(status_code=400, detail={"kind": "state_mismatch", "message": "state 校验失败"})

    try:
        exchanger = registry.exchanger(platform, identifier)
        user = exchanger.exchange_for_user(query)
    except OAuth2Error as e:
        raise _http_error(e) from e

    # state 只能使用一次
    response.delete_cookie(cookie, httponly=True, samesite="lax")
    return {
        "platform": exchanger.platform,
        "identifier": exchanger.identifier,
        "user": user_profile(user),
        "raw": dict(user.raw),
    }
