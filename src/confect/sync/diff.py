"""Line-position diff between a system file and its repository copy.

This is deliberately naive: lines are paired by index, not aligned.  An
inserted line therefore shows up as a change on every following line.  The
output shape is::

    --- a/<system path>
    +++ b/<repository path>
    @@ -N,1 +N,1 @@
    -<repository line N>
    +<system line N>
    ...
    +<extra system lines>      (system side longer)
    -<extra repository lines>  (repository side longer)
"""

from __future__ import annotations


def split_lines(text: str) -> list[str]:
    """Split *text* into lines the way a line iterator would.

    A trailing newline does not produce an empty final line and a ``\\r``
    before each ``\\n`` is dropped.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def positional_diff(
    system_text: str,
    repo_text: str,
    system_label: str,
    repo_label: str,
) -> str:
    """Return the positional diff of two texts, or ``""`` if identical."""
    if system_text == repo_text:
        return ""

    out = [f"--- a/{system_label}\n", f"+++ b/{repo_label}\n"]

    system_lines = split_lines(system_text)
    repo_lines = split_lines(repo_text)

    for index, (sys_line, repo_line) in enumerate(
        zip(system_lines, repo_lines)
    ):
        if sys_line != repo_line:
            out.append(f"@@ -{index + 1},1 +{index + 1},1 @@\n")
            out.append(f"-{repo_line}\n")
            out.append(f"+{sys_line}\n")

    if len(system_lines) > len(repo_lines):
        out.extend(f"+{line}\n" for line in system_lines[len(repo_lines):])
    elif len(repo_lines) > len(system_lines):
        out.extend(f"-{line}\n" for line in repo_lines[len(system_lines):])

    return "".join(out)
