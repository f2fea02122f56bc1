"""
bilibili-auth 命令行入口

login: 扫码登录并保存凭据
refresh: 加载已保存的凭据，需要时刷新并保存
status: 检查当前凭据的登录状态
"""
import asyncio

import typer

from infra.config.settings import Settings
from infra.logger import Logger

app = typer.Typer(
    name="bilibili-auth",
    help="B站扫码登录 / Cookie 刷新 / WBI 签名",
    no_args_is_help=True,
)


def _service():
    settings = Settings()
    Logger.configure(level=settings.LOG_LEVEL, log_file=settings.LOG_FILE)

    # 延迟导入，确保日志系统已配置
    from service.bilibili_auth import BiliAuthService

    return BiliAuthService(config=settings)


async def _login(save_image: str) -> bool:
    service = _service()
    try:
        return await service.login_with_qrcode(save_qr_image=save_image) is not None
    finally:
        await service.close()


async def _refresh() -> bool:
    service = _service()
    try:
        return await service.get_valid_credential() is not None
    finally:
        await service.close()


async def _status() -> bool:
    service = _service()
    try:
        if await service.get_valid_credential() is None:
            Logger.warn("Main", "没有可用的凭据，请先执行 login")
            return False
        nav = await service.get_nav_info()
        if nav is None or not nav.is_login:
            Logger.warn("Main", "凭据已失效，请重新登录")
            return False
        Logger.info("Main", f"已登录: {nav.uname} (UID {nav.mid})")
        return True
    finally:
        await service.close()


def _run(coro) -> None:
    try:
        ok = asyncio.run(coro)
    except KeyboardInterrupt:
        Logger.info("Main", "Received shutdown signal, exiting gracefully...")
        ok = False
    finally:
        Logger.close()
    if not ok:
        raise typer.Exit(1)


@app.command()
def login(
    save_image: str = typer.Option("", help="同时把二维码保存为 PNG 图片的路径"),
) -> None:
    """扫码登录并保存凭据"""
    _run(_login(save_image))


@app.command()
def refresh() -> None:
    """检查并刷新已保存的凭据"""
    _run(_refresh())


@app.command()
def status() -> None:
    """查看当前凭据的登录状态"""
    _run(_status())


if __name__ == "__main__":
    app()
