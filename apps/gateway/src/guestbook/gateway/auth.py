"""鉴权 -- Bearer JWT 解码 + 基于角色的授权判定

每个留言请求在进入核心层之前：
1. 解码 Authorization: Bearer <jwt>，取 sub 与 groups
2. HTTP 方法映射为 action，请求路径作为 object
3. RoleAuthorizer.is_allowed(subject, object, action) 为 False 时直接 403

判定结果以 RequestContext 显式传给路由，而不是挂在 request 对象上。
"""

import time
from collections.abc import Iterable
from fnmatch import fnmatchcase

import structlog
from fastapi import Header, Request
from jose import JWTError, jwt
from pydantic import BaseModel, Field

from .config import AuthConfig, PolicyRule
from .errors import ApiError

log = structlog.get_logger()

METHOD_TO_ACTION: dict[str, str] = {
    "GET": "read",
    "PUT": "write",
    "POST": "write",
    "DELETE": "delete",
}

# Cognito 风格的分组 claim，其次是通用 groups
_GROUP_CLAIMS = ("cognito:groups", "groups")


class RequestContext(BaseModel):
    """单次请求的鉴权上下文"""

    subject: str = Field(description="JWT sub")
    roles: list[str] = Field(default_factory=list, description="subject 拥有的角色")
    action: str = Field(description="请求动作")
    obj: str = Field(description="请求资源路径")


class RoleAuthorizer:
    """基于角色的授权判定

    规则的 role 既可以是角色名，也可以直接是 subject。
    """

    def __init__(self, rules: Iterable[PolicyRule], default_role: str = "member") -> None:
        self._rules = list(rules)
        self._default_role = default_role

    def roles_for(self, subject: str, groups: Iterable[str] = ()) -> list[str]:
        """subject 的有效角色：隐式默认角色 + token 中的分组"""
        roles = [self._default_role]
        for group in groups:
            if group not in roles:
                roles.append(group)
        return roles

    def is_allowed(
        self,
        subject: str,
        obj: str,
        action: str,
        groups: Iterable[str] = (),
    ) -> bool:
        principals = {subject, *self.roles_for(subject, groups)}
        return any(
            rule.role in principals
            and fnmatchcase(obj, rule.obj)
            and fnmatchcase(action, rule.action)
            for rule in self._rules
        )


def decode_bearer_token(authorization: str | None, config: AuthConfig) -> dict:
    """解码 Bearer token，返回 claims

    配置了密钥时校验签名，否则只读取 claims（签名由上游网关校验）。

    Raises:
        ApiError: 401，缺少 token 或无法解码
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise ApiError(401, "UNAUTHORIZED", "Missing bearer token")

    token = authorization.removeprefix("Bearer ").strip()
    try:
        if config.verify_signature:
            claims = jwt.decode(
                token,
                config.jwt_secret.get_secret_value(),
                algorithms=[config.jwt_algorithm],
                options={"verify_aud": False},
            )
        else:
            claims = jwt.get_unverified_claims(token)
    except JWTError as e:
        raise ApiError(401, "UNAUTHORIZED", "Invalid bearer token") from e

    if not isinstance(claims.get("sub"), str) or not claims["sub"]:
        raise ApiError(401, "UNAUTHORIZED", "Token has no subject")
    return claims


def _groups_from_claims(claims: dict) -> list[str]:
    for name in _GROUP_CLAIMS:
        value = claims.get(name)
        if isinstance(value, list):
            return [str(g) for g in value]
        if isinstance(value, str) and value:
            return [value]
    return []


async def authorize(
    request: Request,
    authorization: str | None = Header(default=None),
) -> RequestContext:
    """FastAPI 依赖：鉴权失败时抛出 ApiError，核心操作不会被调用"""
    config: AuthConfig = request.app.state.auth_config
    authorizer: RoleAuthorizer = request.app.state.authorizer

    started = time.perf_counter()
    claims = decode_bearer_token(authorization, config)
    subject = claims["sub"]
    groups = _groups_from_claims(claims)
    action = METHOD_TO_ACTION.get(request.method, "")
    obj = request.url.path

    structlog.contextvars.bind_contextvars(subject=subject, action=action, groups=groups)

    allowed = bool(action) and authorizer.is_allowed(subject, obj, action, groups)
    await log.ainfo(
        "authorization_checked",
        obj=obj,
        allowed=allowed,
        evaluation_ms=round((time.perf_counter() - started) * 1000, 3),
    )
    if not allowed:
        raise ApiError(403, "FORBIDDEN", "Forbidden")

    return RequestContext(
        subject=subject,
        roles=authorizer.roles_for(subject, groups),
        action=action,
        obj=obj,
    )
