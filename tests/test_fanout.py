import logging
from dataclasses import dataclass, field

from ghwatch.errors import FetchError, SinkDeliveryError
from ghwatch.models import NotificationEvent, TargetKind
from ghwatch.notify.console import ConsoleNotifier
from ghwatch.notify.fanout import FanOut


def _event() -> NotificationEvent:
    return NotificationEvent(
        owner="a",
        repo_name="b",
        target_kind=TargetKind.TAG,
        current="v2.0.0",
        previous="v1.9.0",
        link="https://github.com/a/b/tags",
        title="v2.0.0",
        body="",
    )


@dataclass
class _OrderedSink:
    name: str
    calls: list[str]
    fail: bool = False

    def channel(self) -> str:
        return self.name

    def notify(self, event: NotificationEvent) -> None:
        self.calls.append(f"{self.name}:{event.current}")
        if self.fail:
            raise SinkDeliveryError(f"{self.name} is down")

    def report_error(self, error: BaseException) -> None:
        self.calls.append(f"{self.name}:error")
        if self.fail:
            raise SinkDeliveryError(f"{self.name} is down")


@dataclass
class _Calls:
    items: list[str] = field(default_factory=list)


def test_notifiers_called_in_registration_order() -> None:
    calls = _Calls()
    fan_out = FanOut()
    fan_out.add(_OrderedSink("first", calls.items))
    fan_out.add(_OrderedSink("second", calls.items))

    fan_out.notify(_event())

    assert len(fan_out) == 2
    assert calls.items == ["first:v2.0.0", "second:v2.0.0"]


def test_failing_notifier_does_not_stop_the_rest(caplog) -> None:  # noqa: ANN001
    calls = _Calls()
    fan_out = FanOut(
        [
            _OrderedSink("broken", calls.items, fail=True),
            _OrderedSink("healthy", calls.items),
        ]
    )

    fan_out.notify(_event())
    fan_out.report_error(FetchError("x"))

    assert calls.items == ["broken:v2.0.0", "healthy:v2.0.0", "broken:error", "healthy:error"]
    assert "notify failed: channel=broken" in caplog.text
    assert "report_error failed: channel=broken" in caplog.text


def test_empty_fan_out_is_a_no_op() -> None:
    fan_out = FanOut()
    fan_out.notify(_event())
    fan_out.report_error(RuntimeError("x"))
    assert len(fan_out) == 0


def test_console_notifier_logs_headline(caplog) -> None:  # noqa: ANN001
    caplog.set_level(logging.INFO, logger="ghwatch.notify.console")

    ConsoleNotifier().notify(_event())

    assert "(a/b) new tag: https://github.com/a/b/tags" in caplog.text
    assert "previous:" not in caplog.text


def test_console_notifier_verbose_and_errors(caplog) -> None:  # noqa: ANN001
    caplog.set_level(logging.INFO, logger="ghwatch.notify.console")
    notifier = ConsoleNotifier(verbose=True)

    notifier.notify(_event())
    notifier.report_error(FetchError("GitHub API error: status=500"))

    assert "previous: v1.9.0" in caplog.text
    assert "current: v2.0.0" in caplog.text
    assert "error: FetchError: GitHub API error: status=500" in caplog.text
    assert notifier.channel() == "console"


def test_console_notifications_survive_warning_log_level(caplog) -> None:  # noqa: ANN001
    caplog.set_level(logging.WARNING, logger="ghwatch.notify.console")

    ConsoleNotifier().notify(_event())

    assert "(a/b) new tag: https://github.com/a/b/tags" in caplog.text
