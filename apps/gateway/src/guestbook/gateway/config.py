"""AuthConfig -- 鉴权配置加载

从环境变量加载 JWT 校验参数与角色授权策略。
"""

import json
import os

import structlog
from pydantic import BaseModel, Field, SecretStr, ValidationError

log = structlog.get_logger()


class PolicyRule(BaseModel):
    """授权规则：role（或 subject）对 obj 可执行 action

    obj / action 支持 fnmatch 通配（如 "/api/*"、"*"）。
    """

    role: str = Field(description="角色名或 subject")
    obj: str = Field(description="资源路径模式")
    action: str = Field(description="动作：read / write / delete")


def default_policy() -> list[PolicyRule]:
    """默认策略：任何已认证用户均可读写留言"""
    return [
        PolicyRule(role="member", obj="/api/messages", action="read"),
        PolicyRule(role="member", obj="/api/messages", action="write"),
    ]


class AuthConfig(BaseModel):
    """Gateway 鉴权配置 -- 从环境变量加载

    环境变量:
        GUESTBOOK_JWT_SECRET: 设置后校验 JWT 签名；未设置时只解码 claims
        GUESTBOOK_JWT_ALGORITHM: 签名算法（默认 HS256）
        GUESTBOOK_DEFAULT_ROLE: 所有已认证 subject 的隐式角色（默认 member）
        GUESTBOOK_AUTH_POLICY: JSON 数组，元素为 [role, obj, action]
    """

    jwt_secret: SecretStr = Field(
        default=SecretStr(""),
        description="JWT 签名密钥，空字符串表示不校验签名",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT 签名算法")
    default_role: str = Field(default="member", description="隐式角色")
    policy: list[PolicyRule] = Field(
        default_factory=default_policy,
        description="授权规则列表",
    )

    @property
    def verify_signature(self) -> bool:
        return bool(self.jwt_secret.get_secret_value())


def _parse_policy(raw: str) -> list[PolicyRule]:
    entries = json.loads(raw)
    if not isinstance(entries, list):
        raise ValueError("policy must be a JSON array")
    rules = []
    for entry in entries:
        if not isinstance(entry, list) or len(entry) != 3:
            raise ValueError(f"policy entry must be [role, obj, action]: {entry!r}")
        role, obj, action = entry
        rules.append(PolicyRule(role=role, obj=obj, action=action))
    return rules


def load_auth_config() -> AuthConfig:
    """从环境变量加载鉴权配置

    Returns:
        AuthConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("GUESTBOOK_JWT_SECRET"):
        kwargs["jwt_secret"] = SecretStr(val)

    if val := os.environ.get("GUESTBOOK_JWT_ALGORITHM"):
        kwargs["jwt_algorithm"] = val

    if val := os.environ.get("GUESTBOOK_DEFAULT_ROLE"):
        kwargs["default_role"] = val

    if val := os.environ.get("GUESTBOOK_AUTH_POLICY"):
        try:
            kwargs["policy"] = _parse_policy(val)
        except (ValueError, ValidationError) as e:
            log.warning(
                "invalid_auth_policy",
                env_var="GUESTBOOK_AUTH_POLICY",
                error=str(e),
                fallback="default_policy",
            )
            # 使用默认策略，不阻塞启动

    return AuthConfig(**kwargs)
