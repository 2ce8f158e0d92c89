"""
로깅 모듈.

[ 역할 ]
    파일 + 콘솔 로거를 설정. 시그널, 체결, 청산, 틱 에러 등을 기록.
    "autotrader" 루트 로거에 핸들러를 달면 하위 로거
    (autotrader.live, autotrader.risk, autotrader.broker, autotrader.backtest,
    autotrader.storage, autotrader.ml)가 모두 같은 출력으로 전파된다.

[ 로그 파일 위치 ]
    {log_dir}/{name}_{YYYYMMDD}.log (예: logs/autotrader_20240601.log)
    log_dir가 빈 문자열이면 파일 핸들러 없이 콘솔만 사용.

[ 호출하는 곳 ]
    - run_bot.py, run_backtest.py에서 setup_logger() 호출
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str = "autotrader",
    level: str = "INFO",
    log_dir: str = "logs",
    console: bool = True,
) -> logging.Logger:
    """로거 설정. 파일 핸들러(일별) + 콘솔 핸들러 등록.

    같은 이름으로 다시 호출하면 레벨만 갱신하고 핸들러는 중복 등록하지 않는다.
    """
    level_value = logging.getLevelName(level.upper())
    if not isinstance(level_value, int):
        raise ValueError(f"알 수 없는 로그 레벨: {level}")

    logger = logging.getLogger(name)
    logger.setLevel(level_value)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # 파일 핸들러
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y%m%d")
        file_handler = logging.FileHandler(
            log_path / f"{name}_{today}.log",
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # 콘솔 핸들러
    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
