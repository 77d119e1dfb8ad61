"""Tests for the completion fetch strategies."""

from __future__ import annotations

import pytest

from p4shell.completion.cache import CompletionCache
from p4shell.completion.categories import (
    BRANCH,
    CATEGORIES,
    FILESPEC,
    GROUP,
    HELP,
    JOB,
    PENDING,
    SHELVED,
    USER,
    get_category,
)
from p4shell.completion.fetchers import Fetcher
from p4shell.errors import ToolReportedError
from p4shell.session.interaction import ScriptedInteraction
from p4shell.session.state import SessionState
from tests.utils import SESSION_EXPIRED, FakeInvoker, make_engine

CHANGES = (
    "... change 101\n"
    "... status pending\n"
    "... desc Fix the build\n"
    "\tand tidy up\n"
    "\n"
    "... change 102\n"
    "... status pending\n"
    "... desc Add retries\n"
    "\n"
    "... change 201\n"
    "... status pending\n"
    "... desc \n"
    "\n"
)


def make_fetcher(invoker: FakeInvoker, interaction=None, cwd: str = "/ws") -> Fetcher:
    engine = make_engine(invoker, interaction)
    state = SessionState(invoker, cwd=cwd, environ={})
    return Fetcher(engine, state, cwd=cwd, max_changes=50)


class TestFetchMatches:
    def test_branches(self, invoker):
        invoker.on(
            "branches",
            output=(
                "Branch main-to-dev 2024/01/02 'Mainline to dev. '\n"
                "Branch main-to-rel 2024/02/03 'Release branch. '\n"
            ),
        )
        result = make_fetcher(invoker)(BRANCH, "main")
        assert result.candidates == ["main-to-dev", "main-to-rel"]
        assert result.annotations["main-to-dev"] == "Mainline to dev."
        assert invoker.commands() == [("branches", "-E", "main*")]

    def test_job_query_prefix(self, invoker):
        invoker.on("jobs", output="job000123 on 2024/01/01 by bob *open* 'Crash on start'\n")
        result = make_fetcher(invoker)(JOB, "job0001")
        assert result.candidates == ["job000123"]
        assert result.annotations == {"job000123": "Crash on start"}
        assert invoker.commands() == [("jobs", "-e", "job=job0001*")]

    def test_no_server_filter(self, invoker):
        invoker.on("groups", output="admins\ndevs\ndesigners\n")
        result = make_fetcher(invoker)(GROUP, "de")
        assert result.candidates == ["devs", "designers"]
        assert invoker.commands() == [("groups",)]

    def test_users(self, invoker):
        invoker.on(
            "users",
            output=(
                "alice <alice@example.com> (Alice Smith) accessed 2024/01/01\n"
                "alan <alan@example.com> (Alan Jones) accessed 2024/01/02\n"
            ),
        )
        result = make_fetcher(invoker)(USER, "al")
        assert result.candidates == ["alice", "alan"]
        assert result.annotations["alan"] == "Alan Jones"

    def test_duplicates_removed(self, invoker):
        invoker.on("groups", output="devs\ndevs\n")
        assert make_fetcher(invoker)(GROUP, "").candidates == ["devs"]

    def test_no_matches_is_empty(self, invoker):
        invoker.on("branches", output="main* - no such file(s).\n", exit_code=1)
        assert make_fetcher(invoker)(BRANCH, "zz").candidates == []

    def test_failure_raises(self, invoker):
        invoker.on("branches", output="Connect to server failed; check $P4PORT.\n", exit_code=1)
        with pytest.raises(ToolReportedError, match="Connect to server failed"):
            make_fetcher(invoker)(BRANCH, "m")

    def test_fetch_logs_in_when_needed(self, invoker):
        invoker.on("login", "-s", exit_code=1)
        invoker.on("groups", output=SESSION_EXPIRED, exit_code=1)
        invoker.on("groups", output="devs\n")
        fetcher = make_fetcher(invoker, ScriptedInteraction(passwords=["pw"]))
        assert fetcher(GROUP, "").candidates == ["devs"]
        assert ("login",) in invoker.commands()


class TestFetchChanges:
    def test_pending_for_current_client(self, invoker):
        invoker.on("-ztag", "changes", output=CHANGES)
        result = make_fetcher(invoker)(PENDING, "10")
        assert result.candidates == ["101", "102"]
        assert result.annotations == {"101": "Fix the build", "102": "Add retries"}
        assert invoker.commands() == [
            ("-ztag", "changes", "-m", "50", "-s", "pending", "-c", "bob-ws")
        ]

    def test_unindented_description(self, invoker):
        invoker.on(
            "-ztag",
            "changes",
            output="... change 7\n... desc Tweak\nsecond line\n... status pending\n\n",
        )
        result = make_fetcher(invoker)(PENDING, "")
        assert result.candidates == ["7"]
        assert result.annotations == {"7": "Tweak"}

    def test_shelved(self, invoker):
        invoker.on("-ztag", "changes", output=CHANGES)
        result = make_fetcher(invoker)(SHELVED, "")
        assert result.candidates == ["101", "102", "201"]
        assert "201" not in result.annotations
        assert invoker.commands()[0][4:6] == ("-s", "shelved")

    def test_any_status(self, invoker):
        invoker.on("-ztag", "changes", output=CHANGES)
        make_fetcher(invoker)(get_category("changelist"), "")
        assert invoker.commands() == [("-ztag", "changes", "-m", "50")]


class TestFetchFilespecs:
    def test_depot_directories(self, invoker):
        invoker.on("dirs", output="//depot/main\n//depot/dev\n")
        result = make_fetcher(invoker)(FILESPEC, "//de")
        assert result.candidates == ["//depot/main/", "//depot/dev/"]
        assert invoker.commands() == [("dirs", "//de*")]

    def test_depot_files_below_depot_level(self, invoker):
        invoker.on("dirs", output="//depot/main/src\n")
        invoker.on(
            "files",
            output=(
                "//depot/main/README#4 - edit change 12 (text)\n"
                "//depot/main/setup.py#1 - add change 9 (text)\n"
            ),
        )
        result = make_fetcher(invoker)(FILESPEC, "//depot/main/")
        assert result.candidates == [
            "//depot/main/src/",
            "//depot/main/README",
            "//depot/main/setup.py",
        ]
        assert ("files", "-e", "//depot/main/*") in invoker.commands()

    def test_local_paths(self, invoker, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "main.c").write_text("")
        (tmp_path / "setup.cfg").write_text("")
        (tmp_path / ".hidden").write_text("")
        fetcher = make_fetcher(invoker, cwd=str(tmp_path))

        assert fetcher(FILESPEC, "s").candidates == ["setup.cfg", "src/"]
        assert fetcher(FILESPEC, "src/m").candidates == ["src/main.c"]
        assert fetcher(FILESPEC, ".h").candidates == [".hidden"]
        assert fetcher(FILESPEC, "missing/").candidates == []
        assert invoker.commands() == []


class TestFetchHelp:
    def test_topics_and_commands(self, invoker):
        invoker.on("help", "commands", output="Perforce client commands:\n\n\tadd        Open a new file to add it to the depot\n\tannotate   Print file lines\n")
        invoker.on("help", "administration", output="\tadmin      Perform administrative operations\n")
        result = make_fetcher(invoker)(HELP, "a")
        assert result.candidates == ["add", "annotate", "admin"]
        assert result.annotations["add"] == "Open a new file to add it to the depot"

    def test_topics_included(self, invoker):
        result = make_fetcher(invoker)(HELP, "file")
        assert result.candidates == ["filetypes"]


class TestCategoryTable:
    def test_names_match_keys(self):
        for name, category in CATEGORIES.items():
            assert category.name == name

    def test_generic_categories_are_complete(self):
        for category in CATEGORIES.values():
            if category.fetch is None:
                assert category.query_cmd and category.regexp

    def test_only_filespec_is_exact_match(self):
        assert [c.name for c in CATEGORIES.values() if c.exact_match_only] == ["filespec"]

    def test_changelists_share_history(self):
        assert PENDING.history_name == SHELVED.history_name == "changelist"
        assert BRANCH.history_name == "branch"

    def test_unknown_category(self):
        with pytest.raises(KeyError, match="nope"):
            get_category("nope")


class TestFetcherWithCache:
    def test_cache_uses_fetcher(self, invoker):
        invoker.on("groups", output="devs\ndesigners\n")
        cache = CompletionCache(make_fetcher(invoker))
        assert cache.complete(GROUP, "dev") == ["devs"]
        assert cache.complete(GROUP, "devs") == ["devs"]
        assert invoker.commands() == [("groups",)]
