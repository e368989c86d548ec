"""Tests for plugin hook ordering and isolation."""

from esusage.analyzer.item import LocationInput, create_item
from esusage.analyzer.plugins import Plugin, PluginRunner, ScanMetadata, ScanOutput


def make_item(name="Button"):
    return create_item(
        name=name,
        module="@acme/ui",
        type="element",
        version="1.0.0",
        location=LocationInput(code="", file="/repo/a.tsx", module="app", offset=0, path="/repo"),
    )


class Recorder(Plugin):
    def __init__(self, log, label):
        self.log = log
        self.label = label

    def on_start(self, metadata):
        self.log.append((self.label, "start", metadata.source))

    def on_collect(self, item):
        self.log.append((self.label, "collect", item.name))

    def on_end(self, output):
        self.log.append((self.label, "end", len(output.items)))


class TestPluginRunner:
    def test_hooks_run_in_registration_order(self):
        log = []
        runner = PluginRunner([Recorder(log, "a"), Recorder(log, "b")])

        runner.start(ScanMetadata(created_at="now", source="/repo"))
        runner.collect(make_item())
        runner.end(ScanOutput(created_at="now", source="/repo", items=[make_item()]))

        assert log == [
            ("a", "start", "/repo"), ("b", "start", "/repo"),
            ("a", "collect", "Button"), ("b", "collect", "Button"),
            ("a", "end", 1), ("b", "end", 1),
        ]
        assert runner.failures == []

    def test_failing_hook_is_isolated(self):
        log = []

        class Faulty(Plugin):
            def on_collect(self, item):
                raise RuntimeError("boom")

        runner = PluginRunner([Faulty(), Recorder(log, "after")])
        runner.collect(make_item("One"))
        runner.collect(make_item("Two"))

        assert log == [("after", "collect", "One"), ("after", "collect", "Two")]
        assert [(f.hook, str(f.error)) for f in runner.failures] == [
            ("on_collect", "boom"),
            ("on_collect", "boom"),
        ]

    def test_plugins_cannot_mutate_items(self):
        class Vandal(Plugin):
            def on_collect(self, item):
                item.name = "Hacked"
                item.args.data["injected"] = True
                return "ignored"

        item = make_item()
        PluginRunner([Vandal()]).collect(item)

        assert item.name == "Button"
        assert item.args.data == {}

    def test_partial_plugins(self):
        """Objects without a given hook are simply skipped."""
        seen = []

        class OnlyEnd:
            def on_end(self, output):
                seen.append(output.source)

        runner = PluginRunner([OnlyEnd()])
        runner.start(ScanMetadata(created_at="now", source="/repo"))
        runner.collect(make_item())
        runner.end(ScanOutput(created_at="now", source="/repo"))

        assert seen == ["/repo"]
        assert runner.failures == []
