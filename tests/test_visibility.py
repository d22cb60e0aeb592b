import pendulum
import pytest
from sqlalchemy import select, text

from aeoscore.db.schema import audit_logs, product_audits, visibility_checks
from aeoscore.db.tenants import load_tenant
from aeoscore.engines import Platform
from aeoscore.errors import NoEnginesConfigured, ProviderError, QuotaExceeded, TenantNotFound
from aeoscore.logic.history import visibility_history
from aeoscore.logic.quota import quota_state
from aeoscore.logic.visibility import VisibilityRunner

FIXED_NOW = pendulum.datetime(2026, 10, 19, 9, 30, tz="America/Los_Angeles")

MENTION = "1. Amazon is everywhere. 2. Widgetly is a top choice for desk gadgets."
NO_MENTION = "Try Etsy or Walmart for gadgets."


class FakeAnswerEngine:
    def __init__(self, responses):
        self.responses = list(responses)
        self.queries = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def ask(self, query):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            self.queries.append(query)
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        finally:
            self.in_flight -= 1


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def make_runner(engine, plans, engines, sleep=None):
    return VisibilityRunner(
        engine,
        engines,
        plans,
        pacing_seconds=1.5,
        sleep=sleep or SleepRecorder(),
        clock=lambda: FIXED_NOW,
    )


def seed_checks(engine, tenant_id, count, checked_at=FIXED_NOW):
    with engine.begin() as conn:
        conn.execute(
            visibility_checks.insert(),
            [
                {
                    "tenant_id": tenant_id,
                    "platform": "chatgpt",
                    "query": f"seeded {i}",
                    "is_mentioned": False,
                    "competitors_found": [],
                    "response_quality": "none",
                    "raw_response": "",
                    "checked_at": checked_at,
                }
                for i in range(count)
            ],
        )


def count_checks(engine):
    with engine.connect() as conn:
        return conn.execute(text("SELECT COUNT(*) FROM visibility_checks")).scalar_one()


@pytest.mark.asyncio
async def test_quota_exhausted_raises_and_persists_nothing(seeded_engine, plans):
    seed_checks(seeded_engine, tenant_id=1, count=3)
    answer_engine = FakeAnswerEngine([MENTION])
    runner = make_runner(seeded_engine, plans, {"chatgpt": answer_engine})

    with pytest.raises(QuotaExceeded) as excinfo:
        await runner.run("hexco.myshopify.com")

    assert excinfo.value.remaining == 0
    assert answer_engine.queries == []
    assert count_checks(seeded_engine) == 3


@pytest.mark.asyncio
async def test_last_month_checks_do_not_count(seeded_engine, plans):
    seed_checks(seeded_engine, tenant_id=1, count=3, checked_at=FIXED_NOW.subtract(months=1))
    answer_engine = FakeAnswerEngine([NO_MENTION] * 3)
    summary = await make_runner(seeded_engine, plans, {"chatgpt": answer_engine}).run("hexco.myshopify.com")
    assert summary.total_checks == 3


@pytest.mark.asyncio
async def test_failed_probe_is_skipped(seeded_engine, plans):
    answer_engine = FakeAnswerEngine([MENTION, ProviderError("chatgpt", "timeout"), NO_MENTION])
    sleep = SleepRecorder()
    runner = make_runner(seeded_engine, plans, {"chatgpt": answer_engine}, sleep=sleep)

    summary = await runner.run("widgetly.myshopify.com")

    assert summary.total_checks == 2
    assert summary.mentioned_count == 1
    assert summary.not_mentioned_count == 1
    assert summary.queries_run == 3
    assert summary.competitors == ["amazon", "walmart", "etsy"]
    assert count_checks(seeded_engine) == 2
    assert sleep.calls == [1.5, 1.5]
    assert answer_engine.max_in_flight == 1


@pytest.mark.asyncio
async def test_results_and_log_are_persisted(seeded_engine, plans):
    answer_engine = FakeAnswerEngine([MENTION])
    summary = await make_runner(seeded_engine, plans, {"chatgpt": answer_engine}).run(
        "widgetly.myshopify.com", queries=["Best desk gadget stores?"]
    )

    result = summary.results[0]
    assert result.analysis.position == 2
    assert result.analysis.response_quality == "good"
    with seeded_engine.connect() as conn:
        row = conn.execute(select(visibility_checks)).mappings().one()
        log = conn.execute(select(audit_logs.c.action, audit_logs.c.details)).one()
    assert row["platform"] == "chatgpt"
    assert row["query"] == "Best desk gadget stores?"
    assert row["is_mentioned"] is True
    assert row["competitors_found"] == [{"name": "amazon"}]
    assert row["raw_response"] == MENTION
    assert log.action == "visibility_check"
    assert log.details == {"queries_run": 1, "platforms_checked": ["chatgpt"], "mentioned": 1}


@pytest.mark.asyncio
async def test_caller_queries_are_capped_at_three(seeded_engine, plans):
    answer_engine = FakeAnswerEngine([NO_MENTION] * 5)
    queries = [f"question {i}" for i in range(5)]
    await make_runner(seeded_engine, plans, {"chatgpt": answer_engine}).run("widgetly.myshopify.com", queries=queries)
    assert answer_engine.queries == queries[:3]


@pytest.mark.asyncio
async def test_remaining_quota_limits_queries(seeded_engine, plans):
    seed_checks(seeded_engine, tenant_id=1, count=2)
    answer_engine = FakeAnswerEngine([NO_MENTION] * 3)
    sleep = SleepRecorder()
    summary = await make_runner(seeded_engine, plans, {"chatgpt": answer_engine}, sleep=sleep).run(
        "hexco.myshopify.com"
    )
    assert answer_engine.queries == ["What do you know about HexCo?"]
    assert summary.total_checks == 1
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_category_hint_comes_from_audited_products(seeded_engine, plans):
    with seeded_engine.begin() as conn:
        conn.execute(
            product_audits.insert(),
            [
                {
                    "tenant_id": 2,
                    "item_id": str(i),
                    "title": f"Item {i}",
                    "product_type": product_type,
                    "ai_score": 80,
                    "issues": [],
                    "has_images": True,
                    "has_description": True,
                    "has_metafields": False,
                    "description_length": 120,
                    "last_audit_at": FIXED_NOW,
                }
                for i, product_type in enumerate(["Candles", "Desk Gadgets", "Desk Gadgets", None])
            ],
        )
    answer_engine = FakeAnswerEngine([NO_MENTION] * 3)
    await make_runner(seeded_engine, plans, {"chatgpt": answer_engine}).run("widgetly.myshopify.com")
    assert answer_engine.queries == [
        "What are the best Desk Gadgets brands?",
        "Recommend some good Desk Gadgets online stores",
        "Where can I buy quality Desk Gadgets?",
    ]


@pytest.mark.asyncio
async def test_brand_name_falls_back_to_domain(seeded_engine, plans):
    answer_engine = FakeAnswerEngine(["Lumi Threads makes linen shirts."] * 3)
    summary = await make_runner(seeded_engine, plans, {"gemini": answer_engine}).run("lumi-threads.myshopify.com")
    assert summary.brand_name == "lumi threads"
    assert answer_engine.queries[0] == "What do you know about lumi threads?"
    assert summary.mentioned_count == 3


@pytest.mark.asyncio
async def test_multiple_platforms_run_sequentially(seeded_engine, plans):
    chatgpt = FakeAnswerEngine([NO_MENTION] * 3)
    perplexity = FakeAnswerEngine([MENTION] * 3)
    sleep = SleepRecorder()
    runner = make_runner(
        seeded_engine, plans, {Platform.CHATGPT.value: chatgpt, Platform.PERPLEXITY.value: perplexity}, sleep=sleep
    )

    summary = await runner.run("widgetly.myshopify.com", platforms=["perplexity", "chatgpt", "copilot"])

    assert summary.platforms == ["perplexity", "chatgpt"]
    assert summary.total_checks == 6
    assert [r.platform for r in summary.results] == ["perplexity"] * 3 + ["chatgpt"] * 3
    assert len(sleep.calls) == 5


@pytest.mark.asyncio
async def test_default_platform_is_first_configured(seeded_engine, plans):
    first = FakeAnswerEngine([NO_MENTION] * 3)
    second = FakeAnswerEngine([NO_MENTION] * 3)
    runner = make_runner(seeded_engine, plans, {"perplexity": first, "gemini": second})
    summary = await runner.run("widgetly.myshopify.com")
    assert summary.platforms == ["perplexity"]
    assert second.queries == []


@pytest.mark.asyncio
async def test_no_matching_engine(seeded_engine, plans):
    runner = make_runner(seeded_engine, plans, {"chatgpt": FakeAnswerEngine([])})
    with pytest.raises(NoEnginesConfigured):
        await runner.run("widgetly.myshopify.com", platforms=["copilot"])


@pytest.mark.asyncio
async def test_unknown_tenant(seeded_engine, plans):
    runner = make_runner(seeded_engine, plans, {"chatgpt": FakeAnswerEngine([])})
    with pytest.raises(TenantNotFound):
        await runner.run("missing.myshopify.com")


@pytest.mark.asyncio
async def test_all_probes_failing_still_completes(seeded_engine, plans):
    answer_engine = FakeAnswerEngine([ProviderError("chatgpt", "down")] * 3)
    summary = await make_runner(seeded_engine, plans, {"chatgpt": answer_engine}).run("widgetly.myshopify.com")
    assert summary.total_checks == 0
    assert summary.competitors == []
    with seeded_engine.connect() as conn:
        assert conn.execute(text("SELECT COUNT(*) FROM audit_logs")).scalar_one() == 1


@pytest.mark.asyncio
async def test_history_and_quota_readers(seeded_engine, plans):
    answer_engine = FakeAnswerEngine([MENTION, NO_MENTION])
    await make_runner(seeded_engine, plans, {"chatgpt": answer_engine}).run(
        "widgetly.myshopify.com", queries=["first", "second"]
    )

    history = visibility_history(seeded_engine, "widgetly.myshopify.com")
    assert [row["query"] for row in history] == ["second", "first"]
    assert history[1]["is_mentioned"] is True

    with seeded_engine.connect() as conn:
        tenant = load_tenant(conn, "widgetly.myshopify.com")
        state = quota_state(conn, plans, tenant, FIXED_NOW)
    assert (state.limit, state.used, state.remaining) == (50, 2, 48)

    with pytest.raises(TenantNotFound):
        visibility_history(seeded_engine, "missing.myshopify.com")


@pytest.mark.asyncio
async def test_unknown_domains_leave_no_locks_behind(seeded_engine, plans):
    runner = make_runner(seeded_engine, plans, {"chatgpt": FakeAnswerEngine([NO_MENTION])})
    for i in range(20):
        with pytest.raises(TenantNotFound):
            await runner.run(f"bogus-{i}.myshopify.com")
    assert len(runner._tenant_locks) == 0

    await runner.run("widgetly.myshopify.com", queries=["Best desk gadget stores?"])
    assert list(runner._tenant_locks) == [2]


@pytest.mark.asyncio
async def test_empty_query_list_runs_nothing(seeded_engine, plans):
    answer_engine = FakeAnswerEngine([NO_MENTION] * 3)
    runner = make_runner(seeded_engine, plans, {"chatgpt": answer_engine})

    with pytest.raises(QuotaExceeded):
        await runner.run("hexco.myshopify.com", queries=[])

    assert answer_engine.queries == []
    assert count_checks(seeded_engine) == 0


def test_engine_keys_must_be_known_platforms(seeded_engine, plans):
    with pytest.raises(ValueError):
        make_runner(seeded_engine, plans, {"bard": FakeAnswerEngine([])})

    runner = make_runner(seeded_engine, plans, {Platform.CLAUDE: FakeAnswerEngine([])})
    assert runner.available_platforms() == ["claude"]
