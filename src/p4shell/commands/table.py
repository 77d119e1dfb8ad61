"""Static table of p4 commands.

Each command is plain data; CommandRunner maps any descriptor onto the same
generic run path.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CommandDescriptor:
    """How one p4 command is run and displayed.

    Attributes:
        name: The p4 command.
        help: One-line description (shown next to completions).
        default_args: Arguments used when the user gives none.
        mode: Display mode for the output (e.g. "diff").
        category: Completion category for positional arguments.
        option_categories: Completion categories for option values, e.g. -c.
        invalidates: Completion categories cleared after success.
        clears_settings: Forget cached p4 settings after success.
        pop_up: "always"/"never" to override the configured pop-up policy.
        auto_login: Recover from an expired session automatically.
    """

    name: str
    help: str = ""
    default_args: tuple[str, ...] = ()
    mode: str | None = None
    category: str | None = None
    option_categories: tuple[tuple[str, str], ...] = ()
    invalidates: tuple[str, ...] = ()
    clears_settings: bool = False
    pop_up: str | None = None
    auto_login: bool = True

    def category_for_option(self, option: str) -> str | None:
        for flag, category in self.option_categories:
            if flag == option:
                return category
        return None


_PENDING_OPT = (("-c", "pending"),)
_CHANGED = ("pending", "shelved")

COMMANDS: dict[str, CommandDescriptor] = {
    d.name: d
    for d in (
        CommandDescriptor("add", "Open files for adding to the depot", category="filespec", option_categories=_PENDING_OPT),
        CommandDescriptor("annotate", "Print file lines with their revisions", mode="annotate", category="filespec"),
        CommandDescriptor("branches", "List branch specifications", category="branch"),
        CommandDescriptor(
            "change",
            "Delete or output a changelist (-d N, -o)",
            option_categories=(("-d", "pending"), ("-o", "pending")),
            invalidates=_CHANGED,
        ),
        CommandDescriptor(
            "changes",
            "List submitted and pending changelists",
            default_args=("-m", "200"),
            category="filespec",
            option_categories=(("-u", "user"), ("-c", "client")),
        ),
        CommandDescriptor("clients", "List client workspaces", category="client"),
        CommandDescriptor("delete", "Open files for deletion", category="filespec", option_categories=_PENDING_OPT),
        CommandDescriptor("describe", "Display a changelist description", mode="describe", category="changelist"),
        CommandDescriptor("diff", "Diff open files against the depot", default_args=("-du",), mode="diff", category="filespec"),
        CommandDescriptor("diff2", "Compare two depot file revisions", default_args=("-du",), mode="diff", category="filespec"),
        CommandDescriptor("dirs", "List depot subdirectories", category="filespec"),
        CommandDescriptor("edit", "Open files for edit", category="filespec", option_categories=_PENDING_OPT),
        CommandDescriptor("filelog", "List revision history of files", category="filespec"),
        CommandDescriptor("files", "List files in the depot", category="filespec"),
        CommandDescriptor("fix", "Mark jobs as fixed by a changelist", category="job", option_categories=(("-c", "changelist"),)),
        CommandDescriptor("fixes", "List jobs with fixes", option_categories=(("-c", "changelist"), ("-j", "job"))),
        CommandDescriptor("fstat", "Dump file info", category="filespec"),
        CommandDescriptor("groups", "List groups", category="group"),
        CommandDescriptor("have", "List files synced to the workspace", category="filespec"),
        CommandDescriptor("help", "Print help for a command or topic", category="help", auto_login=False),
        CommandDescriptor("info", "Display client and server information"),
        CommandDescriptor(
            "integ",
            "Integrate one set of files into another",
            category="filespec",
            option_categories=(("-b", "branch"), ("-c", "pending")),
        ),
        CommandDescriptor("jobs", "List jobs", default_args=("-m", "100")),
        CommandDescriptor("labels", "List labels", category="label"),
        CommandDescriptor("lock", "Lock opened files", category="filespec", option_categories=_PENDING_OPT),
        CommandDescriptor("login", "Log in to the server", default_args=("-s",), auto_login=False),
        CommandDescriptor("logout", "Log out from the server", auto_login=False, clears_settings=True),
        CommandDescriptor("move", "Move opened files", category="filespec", option_categories=_PENDING_OPT),
        CommandDescriptor(
            "opened",
            "List open files",
            option_categories=(("-c", "pending"), ("-u", "user"), ("-C", "client")),
        ),
        CommandDescriptor("print", "Print file contents", mode="print", category="filespec"),
        CommandDescriptor("reconcile", "Open files to match the workspace", category="filespec", option_categories=_PENDING_OPT),
        CommandDescriptor("refresh", "Refresh unopened files from the depot", category="filespec"),
        CommandDescriptor("reopen", "Move opened files between changelists", category="filespec", option_categories=_PENDING_OPT),
        CommandDescriptor("resolve", "Resolve integrations and updates", default_args=("-am",), category="filespec"),
        CommandDescriptor("revert", "Discard changes to opened files", category="filespec", option_categories=_PENDING_OPT),
        CommandDescriptor("set", "Show or set p4 variables", clears_settings=True, auto_login=False),
        CommandDescriptor(
            "shelve",
            "Store files from a pending changelist on the server",
            category="filespec",
            option_categories=(("-c", "pending"), ("-d", "shelved")),
            invalidates=_CHANGED,
        ),
        CommandDescriptor("status", "Preview reconcile", category="filespec"),
        CommandDescriptor(
            "submit",
            "Submit open files to the depot",
            option_categories=(("-c", "pending"), ("-e", "shelved")),
            invalidates=_CHANGED,
        ),
        CommandDescriptor("sync", "Synchronize the workspace with the depot", category="filespec"),
        CommandDescriptor("tickets", "Display login tickets", auto_login=False),
        CommandDescriptor("unlock", "Release locked files", category="filespec", option_categories=_PENDING_OPT),
        CommandDescriptor(
            "unshelve",
            "Restore shelved files to a pending changelist",
            option_categories=(("-s", "shelved"), ("-c", "pending")),
            invalidates=_CHANGED,
        ),
        CommandDescriptor("update", "Sync files not opened in the workspace", category="filespec"),
        CommandDescriptor("users", "List users", category="user"),
        CommandDescriptor("where", "Show depot, client and local paths", category="filespec"),
    )
}


def get_command(name: str) -> CommandDescriptor:
    """Descriptor for ``name``; unknown commands get a bare descriptor."""
    return COMMANDS.get(name) or CommandDescriptor(name)
