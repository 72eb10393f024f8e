from pydantic import BaseModel, Field


class GateRequirements(BaseModel):
    plan_done: bool = True
    closeout_done: bool = True


class GateStats(BaseModel):
    trade_count: int = 0
    sum_r: float = 0.0
    consecutive_losses: int = 0


class GateLimits(BaseModel):
    max_trades_per_day: float
    max_daily_loss_r: float
    max_consecutive_losses: float
    require_daily_plan: bool
    require_daily_closeout: bool


class GateResponse(BaseModel):
    can_trade: bool
    mode: str
    day_key: str
    reasons: list[str] = []
    block_codes: list[str] = []
    override_active: bool = False
    override_until_ms: int = 0
    override_cooldown_until_ms: int = 0
    cooldown_active: bool = False
    soft_warnings: list[str] = []
    requirements: GateRequirements
    stats: GateStats
    settings: GateLimits


class OverrideResponse(BaseModel):
    activated: bool
    message: str
    gate: GateResponse


class AdminSettingsResponse(BaseModel):
    mode: str
    max_trades_per_day: float
    max_daily_loss_r: float
    max_consecutive_losses: float
    default_risk_percent: float
    require_daily_plan: bool
    require_daily_closeout: bool
    override_until_ms: int
    override_cooldown_until_ms: int


class AdminSettingsUpdate(BaseModel):
    mode: str | None = Field(None, pattern="^(demo|real)$")
    max_trades_per_day: float | None = Field(None, ge=0)
    max_daily_loss_r: float | None = Field(None, ge=0)
    max_consecutive_losses: float | None = Field(None, ge=0)
    default_risk_percent: float | None = Field(None, ge=0)
    require_daily_plan: bool | None = None
    require_daily_closeout: bool | None = None


class TradeCreateRequest(BaseModel):
    result_r: str | float  # "+1", "-1,5" accepted; parsed by the entry flow
    risk_r: float | None = None
    session: str = ""
    timeframe: str = ""
    bias: str = ""
    strategy_id: str | None = None
    notes: str = ""
    tags: list[str] = []
    rule_breaks: list[str] = []


class TradeUpdateRequest(BaseModel):
    notes: str | None = None
    tags: list[str] | str | None = None


class TradeResponse(BaseModel):
    id: str
    created_at: int
    day_key: str
    result_r: float
    risk_r: float | None = None
    session: str = ""
    timeframe: str = ""
    bias: str = ""
    strategy_id: str | None = None
    strategy_name: str | None = None
    notes: str = ""
    tags: list[str] = []
    rule_breaks: list[str] = []
    rule_break_labels: list[str] = []


class TradeCreateResponse(BaseModel):
    trade: TradeResponse
    gate: GateResponse
    message: str


class TradeStatsResponse(BaseModel):
    day_key: str
    trade_count: int = 0
    sum_r: float = 0.0
    consecutive_losses: int = 0
    wins: int = 0
    win_rate: float = 0.0
    avg_r: float = 0.0


class DailyPlanRequest(BaseModel):
    bias: str = ""
    news_caution: bool = False
    key_levels: str = ""
    scenarios: str = ""


class DailyPlanResponse(DailyPlanRequest):
    day_key: str
    created_at: int


class DailyCloseoutRequest(BaseModel):
    bias: str = ""
    news_caution: bool = False
    mood: int | None = Field(None, ge=1, le=5)
    mistakes: str = ""
    wins: str = ""
    improvement: str = ""
    execution_grade: str = ""


class DailyCloseoutResponse(BaseModel):
    day_key: str
    created_at: int
    bias: str = ""
    news_caution: bool = False
    mood: int = 0
    mistakes: str = ""
    wins: str = ""
    improvement: str = ""
    execution_grade: str = ""


class StrategyUpsertRequest(BaseModel):
    id: str | None = None
    name: str = Field(..., min_length=1)
    market: str = Field("both", pattern="^(gold|us30|both)$")
    style_tags: str = ""
    timeframes: str = ""
    description: str = ""
    checklist: str = ""
    image_url: str = ""


class StrategyResponse(BaseModel):
    id: str
    created_at: int
    updated_at: int
    name: str
    market: str
    style_tags: str = ""
    timeframes: str = ""
    description: str = ""
    checklist: str = ""
    image_url: str = ""


class StrategyStatsItem(BaseModel):
    strategy_id: str
    strategy_name: str
    trade_count: int = 0
    win_rate: float = 0.0
    avg_r: float = 0.0
    total_r: float = 0.0


class InsightsResponse(BaseModel):
    window_days: int
    total_trades: int = 0
    wins: int = 0
    win_rate: float = 0.0
    total_r: float = 0.0
    avg_r: float = 0.0
    discipline_score: float = 1.0
    top_rule_breaks: dict[str, int] = {}
    top_tags: dict[str, int] = {}
    per_session: dict[str, dict] = {}
    per_timeframe: dict[str, dict] = {}
    per_bias: dict[str, dict] = {}
    per_strategy: dict[str, dict] = {}
    coach: list[str] = []
