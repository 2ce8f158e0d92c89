"""
ClickHouse 봉 캐시 스키마 정의 및 연결 관리
"""
import logging

import clickhouse_connect
from clickhouse_connect.driver import Client

logger = logging.getLogger("autotrader.storage")

BARS_TABLE = "market_bars"


def get_client(
    host: str = "localhost",
    port: int = 8123,
    database: str = "default",
    user: str = "default",
    password: str = "",
) -> Client:
    """
    ClickHouse 클라이언트 연결 생성

    Args:
        host: ClickHouse 호스트
        port: HTTP 포트 (기본값: 8123)
        database: 데이터베이스 이름
        user: 사용자 이름
        password: 비밀번호

    Returns:
        ClickHouse 클라이언트 객체
    """
    client = clickhouse_connect.get_client(
        host=host,
        port=port,
        database=database,
        username=user,
        password=password,
    )
    return client


def initialize_schema(client: Client) -> None:
    """
    봉 캐시 테이블 생성 (이미 존재하면 무시)

    (symbol, timeframe, time)이 같은 행은 ReplacingMergeTree가 최신 적재분만 남긴다
    → upsert 효과.

    Args:
        client: ClickHouse 클라이언트
    """
    create_bars_table = f"""
    CREATE TABLE IF NOT EXISTS {BARS_TABLE} (
        symbol String,
        timeframe String,
        time DateTime64(3, 'UTC'),
        open Float64,
        high Float64,
        low Float64,
        close Float64,
        volume Float64,
        ingestion_time DateTime DEFAULT now()
    )
    ENGINE = ReplacingMergeTree(ingestion_time)
    PARTITION BY toYYYYMM(time)
    ORDER BY (symbol, timeframe, time)
    SETTINGS index_granularity = 8192
    """

    client.command(create_bars_table)
    logger.info(f"[Storage] 테이블 생성 완료 (또는 이미 존재): {BARS_TABLE}")


def verify_connection(client: Client) -> bool:
    """
    ClickHouse 연결 검증

    Args:
        client: ClickHouse 클라이언트

    Returns:
        연결 성공 시 True
    """
    try:
        result = client.command("SELECT 1")
        return result == 1
    except Exception as e:
        logger.error(f"[Storage] 연결 실패: {e}")
        return False
