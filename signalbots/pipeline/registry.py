"""Bot registry: every bot is a BotSpec run by the shared BotPipeline."""

import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from signalbots.analyzers.ema_analyzer import EmaAnalyzer
from signalbots.analyzers.momentum_analyzer import MomentumAnalyzer
from signalbots.analyzers.support_resistance_analyzer import SupportResistanceAnalyzer
from signalbots.config import Config
from signalbots.data_fetchers.market_data_fetcher import MarketDataFetcher
from signalbots.decision_parser import build_parser
from signalbots.decision_provider import DecisionProvider, DeepSeekDecisionProvider
from signalbots.errors import ConfigurationError
from signalbots.exchange_adapters.exchange_adapter import ExchangeAdapter
from signalbots.executors.trade_executor import BinanceExecutor, SimulatedExecutor
from signalbots.ledger.trade_ledger import TradeLedger
from signalbots.logger import DecisionHistoryLogger
from signalbots.models import MarketData, TradeDecision
from signalbots.pipeline.bot_pipeline import BotPipeline
from signalbots.selection.multi_symbol_selector import MultiSymbolSelector

logger = logging.getLogger(__name__)

HISTORY_LOG_FILE = "deepseek_history.jsonl"

SIMULATED = "simulated"
REAL = "real"

Analyze = Callable[[str, MarketData], TradeDecision]


@dataclass
class BotSpec:
    """What distinguishes one bot from another."""

    name: str
    ledger_file: str
    analyze: Analyze
    executor_kind: str = SIMULATED
    requires_llm: bool = False
    requires_exchange_keys: bool = False
    confirm_volume: bool = False


@dataclass(frozen=True)
class _BotDefinition:
    ledger_file: str
    strategy: str
    executor_kind: str
    confirm_volume: bool = False
    description: str = ""


BOTS: Dict[str, _BotDefinition] = {
    "ema-simulator": _BotDefinition(
        "emaTradingBotSimulator.json", "ema", SIMULATED, True, "EMA 12/26 crossover with volume confirmation"),
    "ema-real": _BotDefinition(
        "emaTradingBot.json", "ema", REAL, True, "EMA 12/26 crossover, real Binance orders"),
    "momentum-simulator": _BotDefinition(
        "momentumTradingBotSimulator.json", "momentum", SIMULATED, False, "Momentum score across 3/5/10 periods"),
    "support-resistance-simulator": _BotDefinition(
        "supportResistanceTrades.json", "support_resistance", SIMULATED, False,
        "Bounces off pivot and round-number levels"),
    "deepseek-simulator": _BotDefinition(
        "realTradingBotSimulator.json", "llm", SIMULATED, False, "DeepSeek recommendation, simulated fills"),
    "deepseek-real": _BotDefinition(
        "realTradingBot.json", "llm", REAL, False, "DeepSeek recommendation, real Binance orders"),
}


def list_bots() -> List[str]:
    return list(BOTS)


def describe_bot(name: str) -> str:
    return BOTS[name].description


def ema_strategy(config: Config) -> Analyze:
    analyzer = EmaAnalyzer(config.trading)

    def analyze(symbol: str, market: MarketData) -> TradeDecision:
        return analyzer.analyze(market.closes, market.price)

    return analyze


def momentum_strategy(config: Config) -> Analyze:
    analyzer = MomentumAnalyzer(config.trading)

    def analyze(symbol: str, market: MarketData) -> TradeDecision:
        return analyzer.analyze(market.closes, market.price)

    return analyze


def support_resistance_strategy(config: Config) -> Analyze:
    analyzer = SupportResistanceAnalyzer(config.trading)

    def analyze(symbol: str, market: MarketData) -> TradeDecision:
        return analyzer.analyze(market.klines, market.price)

    return analyze


def llm_strategy(config: Config, bot_name: str, provider: DecisionProvider,
                 history: Optional[DecisionHistoryLogger] = None) -> Analyze:
    """
    Ask the LLM for each symbol, parse the reply and record it in the history log.

    Provider errors propagate so the selector drops the symbol for this cycle.
    """
    parser = build_parser(config.llm_response_format)
    history = history or DecisionHistoryLogger(os.path.join(config.logs_dir, HISTORY_LOG_FILE))

    def analyze(symbol: str, market: MarketData) -> TradeDecision:
        started = time.time()
        raw_response = provider.get_decision(market)
        decision = parser.parse(raw_response, symbol=symbol, price=market.price)
        history.log_analysis(bot_name, market, provider.last_prompt, raw_response, decision, time.time() - started)
        return decision

    return analyze


def build_bot(name: str, config: Config, exchange_adapter: Optional[ExchangeAdapter] = None,
              provider: Optional[DecisionProvider] = None,
              history: Optional[DecisionHistoryLogger] = None) -> BotPipeline:
    """
    Assemble the pipeline for a registered bot.

    Credentials the bot needs are checked before any client is created.

    Args:
        name: Registry key (see ``list_bots()``)
        config: Runtime configuration
        exchange_adapter: Optional pre-built adapter (tests pass one over a fake exchange)
        provider: Optional decision provider for LLM bots
        history: Optional history logger for LLM bots

    Returns:
        BotPipeline ready for ``run_cycle()``

    Raises:
        ConfigurationError: Unknown bot or missing credentials
    """
    if name not in BOTS:
        raise ConfigurationError(f"Unknown bot '{name}'. Available: {', '.join(BOTS)}")
    definition = BOTS[name]
    requires_llm = definition.strategy == "llm"
    requires_keys = definition.executor_kind == REAL
    config.require_credentials(exchange=requires_keys, llm=requires_llm and provider is None)

    if definition.strategy == "ema":
        analyze = ema_strategy(config)
    elif definition.strategy == "momentum":
        analyze = momentum_strategy(config)
    elif definition.strategy == "support_resistance":
        analyze = support_resistance_strategy(config)
    else:
        provider = provider or DeepSeekDecisionProvider(
            api_key=config.deepseek_api_key,
            model=config.deepseek_model,
            base_url=config.deepseek_base_url,
            timeout=config.llm_timeout_seconds,
            response_format=config.llm_response_format,
        )
        analyze = llm_strategy(config, name, provider, history)

    spec = BotSpec(
        name=name,
        ledger_file=definition.ledger_file,
        analyze=analyze,
        executor_kind=definition.executor_kind,
        requires_llm=requires_llm,
        requires_exchange_keys=requires_keys,
        confirm_volume=definition.confirm_volume,
    )

    exchange_adapter = exchange_adapter or ExchangeAdapter(config)
    fetcher = MarketDataFetcher(exchange_adapter, config)
    if spec.executor_kind == REAL:
        logger.warning(f"[{name}] REAL trading enabled: orders will be placed on Binance")
        executor = BinanceExecutor(exchange_adapter)
    else:
        executor = SimulatedExecutor()

    ledger = TradeLedger(config.ledger_path(spec.ledger_file), max_records=config.ledger_max_records)
    logger.info(f"[{name}] ledger {ledger.path}, symbols {', '.join(config.symbols)}")
    return BotPipeline(spec, config, MultiSymbolSelector(fetcher), ledger, executor)
