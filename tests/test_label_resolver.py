import subprocess

import pytest

import label_resolver
from device_feeds import Package, ShellRunner
from label_resolver import (
    build_strategies, clean_label, label_from_badging, label_from_manifest, looks_like_identifier,
    parse_badging_label, resolve_label, resolve_labels,
)

CHROMIUM = Package(name="org.chromium.browser", path="/data/app/chromium/base.apk")

BADGING = """package: name='org.chromium.browser' versionCode='1' versionName='1.0'
sdkVersion:'24'
application-label:'Chrome Browser'
application-label-en:'Chrome Browser EN'
application: label='Chrome Browser' icon='res/mipmap/app_icon.png'
"""


class FakeAPK:
    labels = {}

    def __init__(self, path):
        if path not in self.labels:
            raise FileNotFoundError(path)
        self.path = path

    def get_app_name(self):
        return self.labels[self.path]


class FakeRunner(ShellRunner):
    def __init__(self, stdout="", returncode=0, exc=None, adb=False):
        super().__init__(adb=adb)
        self.stdout = stdout
        self.returncode = returncode
        self.exc = exc
        self.calls = []

    def run(self, args, timeout=None):
        self.calls.append(list(args))
        if self.exc is not None:
            raise self.exc
        return subprocess.CompletedProcess(args, self.returncode, stdout=self.stdout, stderr="")


@pytest.fixture
def fake_apk(monkeypatch):
    FakeAPK.labels = {}
    monkeypatch.setattr(label_resolver, "APK", FakeAPK)
    return FakeAPK.labels


def test_rejects_class_name_label():
    assert looks_like_identifier("org.chromium.browser.Activity", "org.chromium.browser")


def test_accepts_label_with_space():
    assert not looks_like_identifier("Chrome Browser", "org.chromium.browser")


def test_accepts_label_equal_to_package_name():
    assert not looks_like_identifier("org.chromium.browser", "org.chromium.browser")


def test_accepts_label_with_other_characters():
    assert not looks_like_identifier("Foo.Bar-Baz", "com.foo")
    assert not looks_like_identifier("Settings", "com.android.settings")


def test_clean_label_collapses_newlines():
    assert clean_label("  My\nApp\r\n ") == "My App"
    assert clean_label(None) == ""


def test_manifest_label_returned(fake_apk):
    fake_apk[CHROMIUM.path] = "  Chrome Browser \n"
    assert label_from_manifest(CHROMIUM) == "Chrome Browser"


def test_manifest_rejected_label_falls_through(fake_apk):
    fake_apk[CHROMIUM.path] = "org.chromium.browser.Activity"
    assert label_from_manifest(CHROMIUM) is None

    runner = FakeRunner(stdout=BADGING)
    strategies = build_strategies(runner)
    assert resolve_label(CHROMIUM, strategies) == "Chrome Browser"
    assert runner.calls == [["aapt", "dump", "badging", CHROMIUM.path]]


def test_manifest_empty_label_falls_through(fake_apk):
    fake_apk[CHROMIUM.path] = "   "
    assert label_from_manifest(CHROMIUM) is None


def test_manifest_unreadable_apk_yields_nothing(fake_apk):
    assert label_from_manifest(Package("x.y", "/missing.apk")) is None


def test_manifest_success_skips_badging(fake_apk):
    fake_apk[CHROMIUM.path] = "Chromium"
    runner = FakeRunner(stdout=BADGING)
    assert resolve_label(CHROMIUM, build_strategies(runner)) == "Chromium"
    assert runner.calls == []


def test_parse_badging_label():
    assert parse_badging_label(BADGING) == "Chrome Browser"
    assert parse_badging_label("application-label:'It's Mine'\n") == "It's Mine"
    assert parse_badging_label("application-label:'Curly‘\n") == "Curly"
    assert parse_badging_label("package: name='x'\n") is None
    assert parse_badging_label("application-label-de:'Nur Deutsch'\n") is None


def test_badging_tool_missing():
    runner = FakeRunner(exc=FileNotFoundError("aapt"))
    assert label_from_badging(CHROMIUM, runner) is None


def test_badging_timeout():
    runner = FakeRunner(exc=subprocess.TimeoutExpired("aapt", 1))
    assert label_from_badging(CHROMIUM, runner) is None


def test_badging_failure_exit_code():
    runner = FakeRunner(stdout=BADGING, returncode=1)
    assert label_from_badging(CHROMIUM, runner) is None


def test_adb_mode_uses_badging_only():
    runner = FakeRunner(stdout=BADGING, adb=True)
    strategies = build_strategies(runner)
    assert len(strategies) == 1
    assert resolve_label(CHROMIUM, strategies) == "Chrome Browser"


def test_resolve_label_never_raises():
    def boom(pkg):
        raise RuntimeError("broken")

    assert resolve_label(CHROMIUM, (boom, lambda pkg: "Fallback")) == "Fallback"
    assert resolve_label(CHROMIUM, (boom,)) is None
    assert resolve_label(CHROMIUM, ()) is None


def test_resolve_labels_keeps_input_order():
    packages = [Package(f"com.app{i}", f"/p{i}.apk") for i in range(20)]
    labels = resolve_labels(packages, (lambda pkg: pkg.name.upper(),), jobs=4)
    assert labels == [p.name.upper() for p in packages]
    assert resolve_labels([], (lambda pkg: "x",)) == []
