from aeoscore.plans import load_plans


def test_plan_limits_from_yaml():
    plans = load_plans()
    free = plans.limits_for("FREE")
    assert free.products_audited == 10
    assert free.visibility_checks_per_month == 3
    assert plans.limits_for("premium").products_audited is None
    assert plans.limits_for("PLUS").history_days == 90
    assert "BASIC" in plans


def test_unknown_plan_falls_back_to_free():
    plans = load_plans()
    assert plans.limits_for("ENTERPRISE").plan == "FREE"
    assert plans.limits_for(None).plan == "FREE"
