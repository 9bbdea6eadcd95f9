from budget.events import PURCHASES_CHANGED, EventBus, for_user, topic_for


def test_publish_calls_subscribers():
    bus = EventBus()
    seen = []
    bus.subscribe(PURCHASES_CHANGED, lambda e, p: seen.append((e.name, p["op"])) or "ok")

    results = bus.publish(PURCHASES_CHANGED, {"user_id": "u1", "table": "purchases", "op": "insert"})

    assert results == ["ok"]
    assert seen == [(PURCHASES_CHANGED, "insert")]


def test_publish_without_subscribers():
    assert EventBus().publish("NOPE", {}) == []


def test_unsubscribe():
    bus = EventBus()
    calls = []

    def handler(e, p):
        calls.append(p)

    bus.subscribe(PURCHASES_CHANGED, handler)
    bus.unsubscribe(PURCHASES_CHANGED, handler)
    bus.publish(PURCHASES_CHANGED, {"user_id": "u1"})
    bus.unsubscribe(PURCHASES_CHANGED, handler)

    assert calls == []


def test_for_user_filters_other_users():
    bus = EventBus()
    calls = []
    bus.subscribe(topic_for("purchases"), for_user("u1", lambda e, p: calls.append(p["user_id"])))

    bus.publish(PURCHASES_CHANGED, {"user_id": "u2", "table": "purchases"})
    bus.publish(PURCHASES_CHANGED, {"user_id": "u1", "table": "purchases"})

    assert calls == ["u1"]
