import os

from dotenv import load_dotenv

# 環境変数の読み込み
# ENV に応じた .env ファイルを選択 (.env.<ENV> → .env の順で探す)
ENV = os.getenv("ENV", os.getenv("PYTHON_ENV", "development"))

_env_file = None
if os.path.exists(f".env.{ENV}"):
    _env_file = f".env.{ENV}"
elif os.path.exists(".env"):
    _env_file = ".env"

if _env_file:
    load_dotenv(_env_file)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# 設定値
DEFAULT_CHUNK_SIZE = _env_int("GIFTI_CHUNK_SIZE", 8192)  # XML parser feed size (bytes)
DEFAULT_BUFFER_SIZE = _env_int("GIFTI_BUFFER_SIZE", 8192)  # Writer working buffer (bytes)
DEFAULT_LINE_BREAKS = _env_bool("GIFTI_LINE_BREAKS", False)
DEBUG = _env_bool("GIFTI_DEBUG", False)
