from pocket_ledger.events import ChangeNotifier


def test_listeners_called_in_order_and_unsubscribe():
    notifier = ChangeNotifier()
    calls = []
    first = notifier.subscribe(lambda kind: calls.append(("first", kind)))
    notifier.subscribe(lambda kind: calls.append(("second", kind)))

    notifier.emit("category")
    first()
    first()
    notifier.emit("transaction")

    assert calls == [
        ("first", "category"),
        ("second", "category"),
        ("second", "transaction"),
    ]


def test_failing_listener_does_not_block_others(caplog):
    notifier = ChangeNotifier()
    calls = []

    def broken(kind):
        raise RuntimeError("view gone")

    notifier.subscribe(broken)
    notifier.subscribe(calls.append)
    notifier.emit("store")

    assert calls == ["store"]
    assert "failed" in caplog.text
