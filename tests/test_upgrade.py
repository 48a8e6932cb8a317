from github_ci.config import ActionConfig, Config, UpgradeConfig
from github_ci.upgrade import Upgrader, comment_version, discover_actions, format_reference

OLD_SHA = "b4ffde65f46336ab88eb53be808477a3936bae11"
NEW_SHA = "c5ffde65f46336ab88eb53be808477a3936bae11"

WORKFLOW = """\
jobs:
  build:
    steps:
      - uses: actions/checkout@v3
      - uses: actions/setup-go@v4
      - uses: ./.github/actions/local
"""


def config(fmt="tag", **actions):
    return Config(upgrade=UpgradeConfig(
        version=fmt,
        actions={name.replace("__", "/"): ActionConfig(version=pattern) for name, pattern in actions.items()},
    ))


def test_format_reference():
    assert format_reference("tag", "v4.1.1", NEW_SHA) == ("v4.1.1", "")
    assert format_reference("hash", "v4.1.1", NEW_SHA) == (NEW_SHA, "v4.1.1")
    assert format_reference("major", "v4.1.1", NEW_SHA) == ("v4", "")


def test_comment_version():
    assert comment_version(f"  - uses: actions/checkout@{OLD_SHA} # v3.5.0") == "v3.5.0"
    assert comment_version(f"  - uses: actions/checkout@{OLD_SHA}") is None
    assert comment_version("  - uses: actions/checkout@main # tracking main") is None


def test_unconfigured_actions_use_latest_release(make_workflow, resolver):
    resolver.unconstrained[("actions", "checkout")] = ("v4.1.1", NEW_SHA)
    resolver.unconstrained[("actions", "setup-go")] = ("v5.0.0", OLD_SHA)
    wf = make_workflow(WORKFLOW)

    results = Upgrader(config(), resolver).upgrade([wf])

    assert [str(u) for u in results.upgrades] == [
        "ci.yml:4: actions/checkout v3 -> v4.1.1",
        "ci.yml:5: actions/setup-go v4 -> v5.0.0",
    ]
    assert "actions/checkout@v4.1.1\n" in wf.text
    assert "actions/setup-go@v5.0.0\n" in wf.text
    assert results.errors == []


def test_configured_actions_use_their_pattern(make_workflow, resolver):
    resolver.constrained[("actions", "checkout", "^3.0.0")] = ("v3.6.0", NEW_SHA)
    resolver.unconstrained[("actions", "setup-go")] = ("v4.1.0", OLD_SHA)
    wf = make_workflow(WORKFLOW)

    Upgrader(config("hash", actions__checkout="^3.0.0"), resolver).upgrade([wf])

    assert f"actions/checkout@{NEW_SHA} # v3.6.0" in wf.text
    assert f"actions/setup-go@{OLD_SHA} # v4.1.0" in wf.text
    assert resolver.calls_to("resolve_latest_constrained") == [
        ("resolve_latest_constrained", "actions", "checkout", "v3", "^3.0.0"),
    ]


def test_major_format(make_workflow, resolver):
    resolver.unconstrained[("actions", "checkout")] = ("v4.1.1", NEW_SHA)
    resolver.unconstrained[("actions", "setup-go")] = ("v4.2.0", OLD_SHA)
    wf = make_workflow(WORKFLOW)

    results = Upgrader(config("major"), resolver).upgrade([wf])

    assert "actions/checkout@v4\n" in wf.text
    # v4 -> v4.2.0 is still written as v4
    assert [u.action for u in results.upgrades] == ["actions/checkout"]


def test_dry_run_leaves_files_alone(make_workflow, resolver):
    resolver.unconstrained[("actions", "checkout")] = ("v4.1.1", NEW_SHA)
    resolver.unconstrained[("actions", "setup-go")] = ("v5.0.0", OLD_SHA)
    wf = make_workflow(WORKFLOW)

    results = Upgrader(config(), resolver, dry_run=True).upgrade([wf])

    assert len(results.upgrades) == 2
    assert wf.text == WORKFLOW
    with open(wf.file, encoding="utf-8") as f:
        assert f.read() == WORKFLOW


def test_pattern_blocks_disallowed_versions(make_workflow, resolver):
    resolver.unconstrained[("actions", "checkout")] = ("v0.9.0", NEW_SHA)
    resolver.unconstrained[("actions", "setup-go")] = ("v4", OLD_SHA)
    wf = make_workflow(WORKFLOW)

    results = Upgrader(config(), resolver).upgrade([wf])

    assert results.upgrades == []
    assert wf.text == WORKFLOW


def test_pinned_action_uses_comment_version(make_workflow, resolver):
    resolver.unconstrained[("actions", "checkout")] = ("v4.0.0", NEW_SHA)
    wf = make_workflow(f"steps:\n  - uses: actions/checkout@{OLD_SHA} # v3.5.0\n")

    results = Upgrader(config("hash"), resolver).upgrade([wf])

    assert wf.lines()[1] == f"  - uses: actions/checkout@{NEW_SHA} # v4.0.0"
    assert results.upgrades[0].old_ref == OLD_SHA
    assert resolver.calls_to("resolve_tag_for_commit") == []


def test_pinned_action_without_comment_looks_up_tag(make_workflow, resolver):
    resolver.unconstrained[("actions", "checkout")] = ("v3.5.0", OLD_SHA)
    resolver.tags_for_commit[("actions", "checkout", OLD_SHA)] = "v3.5.0"
    wf = make_workflow(f"steps:\n  - uses: actions/checkout@{OLD_SHA}\n")

    results = Upgrader(config("hash"), resolver).upgrade([wf])

    assert results.upgrades == []
    assert len(resolver.calls_to("resolve_tag_for_commit")) == 1


def test_failures_are_collected(make_workflow, resolver):
    resolver.unconstrained[("actions", "setup-go")] = ("v5.0.0", OLD_SHA)
    wf = make_workflow(WORKFLOW)

    results = Upgrader(config(), resolver).upgrade([wf])

    assert [(e.file, e.action) for e in results.errors] == [("ci.yml", "actions/checkout")]
    assert [u.action for u in results.upgrades] == ["actions/setup-go"]


def test_discover_actions(make_workflow):
    first = make_workflow(WORKFLOW)
    second = make_workflow("steps:\n  - uses: actions/checkout@v4\n  - uses: github/codeql-action/init@v3\n",
                           name="codeql.yml")

    assert discover_actions([first, second]) == [
        "actions/checkout",
        "actions/setup-go",
        "github/codeql-action/init",
    ]
