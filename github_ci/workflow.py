"""
GitHub Actions workflow model

A workflow keeps its raw bytes as the source of truth. Edits are applied to
the raw lines so that comments, blank lines and quoting survive; the parsed
node tree is only used to locate things and is rebuilt after every edit.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ReferenceNotFoundError, WorkflowParseError
from .utils import count_leading_spaces, find_workflow_files

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_VERSION_TAG = re.compile(r'^[vV]?\d')


@dataclass
class WorkflowContent:
    """Parsed top-level structure of a workflow."""

    name: str = ""
    on: Any = None
    jobs: Dict[str, Any] = field(default_factory=dict)
    permissions: Any = None


@dataclass
class ActionUsage:
    """A 'uses' value found in a workflow, with its 1-based line number."""

    uses: str
    line: int


def _parse_content(data: Any) -> WorkflowContent:
    """Build the workflow summary from the loaded YAML document."""
    if data is None:
        return WorkflowContent()
    if not isinstance(data, dict):
        raise WorkflowParseError("workflow document is not a mapping")

    jobs = data.get('jobs') or {}
    if not isinstance(jobs, dict):
        raise WorkflowParseError("workflow 'jobs' is not a mapping")

    name = data.get('name')
    if isinstance(name, (dict, list)):
        raise WorkflowParseError("workflow 'name' is not a scalar")

    # YAML 1.1 reads a bare `on` key as the boolean true
    on = data['on'] if 'on' in data else data.get(True)

    return WorkflowContent(
        name="" if name is None else str(name),
        on=on,
        jobs=jobs,
        permissions=data.get('permissions'),
    )


class Workflow:
    """A GitHub Actions workflow file."""

    def __init__(self, file: PathLike, content: WorkflowContent, raw_bytes: bytes):
        self.file = str(file)
        self.content = content
        self.raw_bytes = raw_bytes
        self._node: Optional[yaml.Node] = None

    def __repr__(self) -> str:
        return f"Workflow({self.file!r})"

    @property
    def base_name(self) -> str:
        """Base name of the workflow file."""
        return os.path.basename(self.file)

    @property
    def text(self) -> str:
        return self.raw_bytes.decode('utf-8')

    def set_text(self, text: str) -> None:
        """Replace the raw content and drop the cached node tree."""
        self.raw_bytes = text.encode('utf-8')
        self._invalidate_node()

    def lines(self) -> List[str]:
        """The current content as individual lines."""
        return self.text.split('\n')

    def _get_node(self) -> Optional[yaml.Node]:
        """Return the cached node tree, composing it if necessary."""
        if self._node is None:
            try:
                self._node = yaml.compose(self.text, Loader=yaml.SafeLoader)
            except yaml.YAMLError as e:
                raise WorkflowParseError(f"failed to parse YAML node in {self.file}: {e}") from e
        return self._node

    def _invalidate_node(self) -> None:
        self._node = None

    def find_actions(self) -> List[ActionUsage]:
        """Find every 'uses' reference in the workflow, at any depth."""
        actions: List[ActionUsage] = []
        node = self._get_node()
        if node is not None:
            _find_actions_in_node(node, actions, set())
        return actions

    def has_permissions(self) -> bool:
        """Check if the workflow has permissions configured."""
        return self.content.permissions is not None

    def save(self) -> None:
        """Write the current raw content back to disk."""
        with open(self.file, 'wb') as f:
            f.write(self.raw_bytes)
        logger.info(f"Updated workflow file: {self.file}")

    def update_reference(self, old_uses: str, new_uses: str, comment: str = "") -> None:
        """Replace an action reference on every line that uses it, and save.

        Any existing trailing comment on a changed line is replaced by
        ``comment`` (or dropped when it is empty).
        """
        # Bounded so that "actions/checkout@v3" does not match "actions/checkout@v3.5.0"
        pattern = re.compile(r'(?<![\w.\-/])' + re.escape(old_uses) + r'(?![\w.\-/@])')

        lines = self.lines()
        updated = False

        for i, line in enumerate(lines):
            new_line, count = pattern.subn(new_uses, line, count=1)
            if not count:
                continue

            # Drop any existing line comment and trailing whitespace
            idx = new_line.find(' #')
            if idx != -1:
                new_line = new_line[:idx]
            new_line = new_line.rstrip(' \t')
            if comment:
                new_line += f" # {comment}"

            lines[i] = new_line
            updated = True

        if not updated:
            raise ReferenceNotFoundError(f"action {old_uses} not found in {self.file}")

        self.set_text('\n'.join(lines))
        self.save()

    def normalize_comment_spacing(self) -> bool:
        """Use exactly one space before version comments on 'uses:' lines.

        Returns True if anything changed.
        """
        lines = self.lines()
        modified = False

        for i, line in enumerate(lines):
            if 'uses:' not in line:
                continue
            idx = line.find(' #')
            if idx == -1:
                continue

            hash_idx = line.index('#', idx)
            comment = line[hash_idx + 1:].strip()
            if not _VERSION_TAG.match(comment):
                continue

            new_line = line[:idx].rstrip(' \t') + ' ' + line[hash_idx:]
            if new_line != line:
                lines[i] = new_line
                modified = True

        if modified:
            self.set_text('\n'.join(lines))
        return modified

    def find_job_line(self, job_id: str) -> int:
        """Find the line where a job is defined (0 if not found)."""
        prefix = f"  {job_id}:"
        for i, line in enumerate(self.lines()):
            if line.startswith(prefix):
                return i + 1
        return 0

    def find_step_line(self, job_id: str, step_index: int) -> int:
        """Find the line where a step of a job starts (0 if not found)."""
        job_prefix = f"  {job_id}:"
        in_job = False
        in_steps = False
        step_count = 0

        for i, line in enumerate(self.lines()):
            if line.startswith(job_prefix):
                in_job = True
                continue
            if not in_job:
                continue

            # Left the job
            if line and not line.startswith(' '):
                break

            stripped = line.strip()
            if stripped.startswith('steps:'):
                in_steps = True
                continue
            if in_steps and stripped.startswith('- '):
                if step_count == step_index:
                    return i + 1
                step_count += 1

        return 0

    def extract_workflow_env(self) -> Dict[str, bool]:
        """Collect the names of workflow-level env variables."""
        result: Dict[str, bool] = {}
        in_env = False

        for line in self.lines():
            stripped = line.strip()
            indent = count_leading_spaces(line)

            if stripped == 'env:' and indent == 0:
                in_env = True
                continue
            if not in_env:
                continue

            # Next top-level key ends the env block
            if indent == 0 and stripped and not stripped.startswith('#'):
                break
            if indent > 0 and ':' in stripped and not stripped.startswith('#'):
                result[stripped.split(':', 1)[0].strip()] = True

        return result


def _find_actions_in_node(node: yaml.Node, actions: List[ActionUsage], seen: set) -> None:
    """Recursively collect scalar 'uses' values from a node tree."""
    # Aliased nodes are shared objects in the composed tree; visit them once
    if id(node) in seen:
        return
    seen.add(id(node))

    if isinstance(node, yaml.MappingNode):
        for key_node, value_node in node.value:
            if (isinstance(key_node, yaml.ScalarNode) and key_node.value == 'uses'
                    and isinstance(value_node, yaml.ScalarNode)):
                actions.append(ActionUsage(uses=value_node.value, line=value_node.start_mark.line + 1))
            else:
                _find_actions_in_node(value_node, actions, seen)

    elif isinstance(node, yaml.SequenceNode):
        for item in node.value:
            _find_actions_in_node(item, actions, seen)


def load_workflow(path: PathLike) -> Workflow:
    """Load and parse a single workflow file."""
    try:
        with open(path, 'rb') as f:
            raw_bytes = f.read()
    except OSError as e:
        raise WorkflowParseError(f"failed to read file {path}: {e}") from e

    try:
        data = yaml.safe_load(raw_bytes.decode('utf-8'))
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise WorkflowParseError(f"failed to parse YAML in {path}: {e}") from e

    content = _parse_content(data)
    logger.debug(f"Loaded workflow {path} ({len(content.jobs)} jobs)")
    return Workflow(path, content, raw_bytes)


def load_workflows(directory: PathLike) -> List[Workflow]:
    """Load every workflow file in a directory."""
    directory = Path(directory)
    try:
        files = find_workflow_files(directory)
    except OSError as e:
        raise WorkflowParseError(f"failed to read workflows directory {directory}: {e}") from e

    return [load_workflow(path) for path in files]
