"""
=============================================================================
암호화폐 자동매매 봇 (AutoTrader)
=============================================================================

[ 시스템 전체 구조 ]

    run_bot.py (실시간 진입점)              run_backtest.py (백테스트 진입점)
         │                                        │
         ├── utils/config.py   ← config.yaml 로드 + validate()
         ├── utils/logger.py   ← 로깅
         │
         ├── strategies/       ← 매매 전략 (시그널 생성, @register로 등록)
         │     ├── rsi_strategy.py               ("rsi")
         │     ├── ema_cross_strategy.py         ("ema-crossover")
         │     ├── macd_strategy.py              ("macd")
         │     ├── trend_pullback_strategy.py    ("trend-pullback")
         │     └── hybrid_predictive_strategy.py ("hybrid-predictive")
         │
         ├── live/engine.py    ← 틱 오케스트레이터 (TradingEngine)
         │     ├── risk/risk_manager.py  ← 사이징 / 손절·익절 / 최대 포지션
         │     ├── data/bot_state.py     ← 계좌·포지션·로그 상태 + 불변 스냅샷
         │     └── live/broadcast.py     ← 스냅샷 구독자 (로그 / JSON 파일)
         ├── live/scheduler.py ← 고정 간격 틱 루프
         │
         └── backtest/engine.py ← 과거 봉 워크포워드 시뮬레이션
               ├── data/portfolio.py    ← 로컬 자산/거래기록
               └── backtest/metrics.py  ← 성과 지표


[ 핵심 추상 클래스 (core/) - 모든 구현체의 부모 ]

    core/broker_api.py       → brokers/mock_broker.py (페이퍼/테스트용 구현)
    core/data_provider.py    → data/clickhouse_store.py (봉 캐시)
    core/trading_strategy.py → strategies/*.py
    core/predictor.py        → NeutralPredictor / ModelFilePredictor


[ 틱 데이터 흐름 ]

    1. 브로커에서 계좌/포지션 동기화
    2. 오픈 포지션 손절·익절 점검 (신규 진입보다 먼저)
    3. 종목별 봉 조회 → 전략 시그널 → 리스크 게이트 → 주문
    4. 스냅샷 게시 (구독자에게 fire-and-forget)
"""
