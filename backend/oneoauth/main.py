"""
OneOAuth - OAuth2 授权码交换服务
把各平台的授权回调换取为统一的用户信息
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .config import CONFIG_FILE, Config, get_config
from .oauth.assembly import assemble_registry
from .page import router


logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """配置日志"""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    config: Config = app.state.config

    # 启动时
    logger.info("正在启动 OneOAuth...")
    app.state.registry = assemble_registry(config)
    logger.info(f"已加载平台: {sorted(app.state.registry.platforms())}")
    logger.info(f"服务地址: http://{config.server.host}:{config.server.port}")

    yield

    # 关闭时
    logger.info("正在关闭 OneOAuth...")
    app.state.registry.close()
    app.state.registry = None
    logger.info("OneOAuth 已关闭")


def create_app(config: Optional[Config] = None) -> FastAPI:
    """创建 FastAPI 应用"""
    if config is None:
        config = get_config()

    app = FastAPI(
        title="OneOAuth",
        description="OAuth2 授权码交换服务",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if config.server.debug else None,
        redoc_url="/redoc" if config.server.debug else None,
    )
    app.state.config = config
    app.state.registry = None

    # 添加安全头中间件
    @app.middleware("http")
    async def add_security_headers(request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    @app.get("/health")
    async def health_check():
        """健康检查"""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    # 注册路由
    app.include_router(router)

    return app


def main():
    """主函数"""
    # 检查配置文件
    if not CONFIG_FILE.exists():
        get_config()
        print(f"配置文件不存在，已生成默认配置: {CONFIG_FILE.absolute()}")
        return

    config = get_config()
    setup_logging(config.server.debug)

    if not config.platforms:
        logger.warning("未配置任何平台")

    # 创建并运行应用
    app = create_app(config)

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="debug" if config.server.debug else "info",
        access_log=config.server.debug,
    )


if __name__ == "__main__":
    main()
