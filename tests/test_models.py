import pytest

from github_ci.models import ActionReference, Issue, is_commit_hash, is_major_version_only, new_issue

SHA = "b4ffde65f46336ab88eb53be808477a3936bae11"


def test_parse_simple_action():
    ref = ActionReference.parse("actions/checkout@v3")
    assert (ref.owner, ref.repo, ref.path, ref.ref) == ("actions", "checkout", "", "v3")
    assert ref.name == "actions/checkout"
    assert str(ref) == "actions/checkout@v3"


def test_parse_action_with_path():
    ref = ActionReference.parse("github/codeql-action/upload-sarif@v2")
    assert ref.owner == "github"
    assert ref.repo == "codeql-action"
    assert ref.path == "upload-sarif"
    assert ref.name == "github/codeql-action/upload-sarif"
    assert ref.with_ref(SHA) == f"github/codeql-action/upload-sarif@{SHA}"


def test_parse_reusable_workflow():
    ref = ActionReference.parse("octo-org/example-repo/.github/workflows/reusable.yml@main")
    assert ref.repo == "example-repo"
    assert ref.path == ".github/workflows/reusable.yml"
    assert ref.ref == "main"


@pytest.mark.parametrize("uses", [
    "./.github/actions/local",
    "docker://alpine:3.18",
    "actions/checkout",
    "checkout@v1",
    "actions/checkout@",
    "@v1",
])
def test_parse_rejects_non_remote_values(uses):
    with pytest.raises(ValueError):
        ActionReference.parse(uses)


def test_is_commit_hash():
    assert is_commit_hash(SHA)
    assert is_commit_hash(SHA.upper())
    assert not is_commit_hash(SHA[:-1])
    assert not is_commit_hash("v3")
    assert not is_commit_hash("g" * 40)
    assert not is_commit_hash(SHA + "\n")


def test_is_pinned():
    assert ActionReference.parse(f"actions/checkout@{SHA}").is_pinned()
    assert not ActionReference.parse("actions/checkout@main").is_pinned()


@pytest.mark.parametrize("ref, expected", [
    ("v3", True),
    ("3", True),
    ("v0", True),
    ("v3.1", False),
    ("main", False),
    ("", False),
])
def test_is_major_version_only(ref, expected):
    assert is_major_version_only(ref) is expected


def test_issue_string_with_line():
    issue = Issue(file="ci.yml", line=7, message="Line has trailing whitespace", linter="format")
    assert str(issue) == "ci.yml:7: (format) Line has trailing whitespace"


def test_issue_string_without_line():
    issue = Issue(file="ci.yml", line=0, message="Workflow is missing permissions configuration",
                  linter="permissions")
    assert str(issue) == "ci.yml: (permissions) Workflow is missing permissions configuration"


def test_issue_key_includes_linter():
    a = Issue(file="ci.yml", line=1, message="m", linter="style")
    b = Issue(file="ci.yml", line=1, message="m", linter="format")
    assert a.key() != b.key()
    assert a.key() == Issue(file="ci.yml", line=1, message="m", linter="style").key()


def test_new_issue_skips_empty_message():
    assert new_issue("ci.yml", 1, "") is None
    assert new_issue("ci.yml", 1, "problem") == Issue(file="ci.yml", line=1, message="problem")
