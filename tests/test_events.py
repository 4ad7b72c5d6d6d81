from quotabar.events import TOKEN_STATUS, USAGE_UPDATE, EventEmitter


class TestEventEmitter:
    def test_delivers_to_subscribers_of_the_event_only(self) -> "None":
        emitter = EventEmitter()
        statuses: "list[object]" = []
        updates: "list[object]" = []
        emitter.subscribe(TOKEN_STATUS, statuses.append)
        emitter.subscribe(USAGE_UPDATE, updates.append)

        emitter.emit(TOKEN_STATUS, "ok")

        assert statuses == ["ok"]
        assert updates == []

    def test_failing_listener_does_not_block_others(self) -> "None":
        emitter = EventEmitter()
        received: "list[object]" = []

        def _broken(payload: "object") -> "None":
            raise RuntimeError("listener failed")

        emitter.subscribe(TOKEN_STATUS, _broken)
        emitter.subscribe(TOKEN_STATUS, received.append)

        # should not raise
        emitter.emit(TOKEN_STATUS, "error")
        assert received == ["error"]

    def test_unsubscribe(self) -> "None":
        emitter = EventEmitter()
        received: "list[object]" = []
        emitter.subscribe(TOKEN_STATUS, received.append)
        emitter.unsubscribe(TOKEN_STATUS, received.append)

        emitter.emit(TOKEN_STATUS, "ok")
        assert received == []
