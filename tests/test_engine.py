"""Tests for the sync reconciler."""

from datetime import datetime

import pytest

from tasklink.models import (
    CommitMetadata,
    RemoteLink,
    SyncOutcome,
    SyncPhase,
    TaskCollection,
    WorkflowState,
)
from tasklink.sync.codec import SUBTASK_NAMESPACE, parse_fields
from tasklink.sync.engine import GitHubReconciler, ShortcutReconciler
from tasklink.sync.errors import RemoteAuthError, RemoteError
from tasklink.sync.rendering import collect_descendants, parse_issue_body, render_issue_body

UNPUSHED = CommitMetadata(sha="deadbeef1234", message="Fix", branch="main")


def verified(sha: str) -> bool:
    return True


def unverified(sha: str) -> bool:
    return False


def with_links(
    collection: TaskCollection, outcomes: list[SyncOutcome], provider_id: str
) -> TaskCollection:
    """Apply returned links the way the CLI persists them."""
    tasks = {t.id: t for t in collection.tasks}

    def walk(items: list[SyncOutcome]) -> None:
        for outcome in items:
            if outcome.link is not None:
                task = tasks[outcome.task_id]
                tasks[outcome.task_id] = task.with_link(provider_id, outcome.link)
            walk(outcome.subtask_outcomes)

    walk(outcomes)
    return TaskCollection(tasks=list(tasks.values()))


def link(identifier: int, state: WorkflowState = WorkflowState.UNSTARTED) -> RemoteLink:
    return RemoteLink(identifier=identifier, state=state)


@pytest.fixture
def github(github_adapter) -> GitHubReconciler:
    return GitHubReconciler(github_adapter, "tasklink", commit_verifier=verified)


@pytest.fixture
def shortcut(shortcut_adapter) -> ShortcutReconciler:
    return ShortcutReconciler(shortcut_adapter, "tasklink", commit_verifier=verified)


class TestPolicy:
    """Tests for desired state and labels."""

    def test_desired_states(self, github, make_task):
        """Completion wins over started; started wins over nothing."""
        started = datetime(2024, 1, 16)
        assert github.desired_state(make_task("a")) is WorkflowState.UNSTARTED
        assert github.desired_state(make_task("b", started_at=started)) is WorkflowState.STARTED
        assert github.desired_state(make_task("c", completed=True)) is WorkflowState.DONE

    def test_unverified_commit_holds_task_open(self, github_adapter, make_task):
        """A completed task whose commit is not pushed is not done."""
        reconciler = GitHubReconciler(github_adapter, "tasklink", commit_verifier=unverified)
        task = make_task("a", completed=True, commit=UNPUSHED)

        assert reconciler.is_done(task) is False
        assert reconciler.desired_state(task) is WorkflowState.UNSTARTED
        assert reconciler.not_closing_reason(task) == "commit deadbee not pushed to remote"

    def test_no_reason_without_commit(self, github_adapter, make_task):
        """Completed tasks without a commit close immediately."""
        reconciler = GitHubReconciler(github_adapter, "tasklink", commit_verifier=unverified)
        task = make_task("a", completed=True)

        assert reconciler.is_done(task) is True
        assert reconciler.not_closing_reason(task) is None

    def test_github_labels(self, github, make_task):
        """Base label, priority label and one status label."""
        labels = github.managed_labels(make_task("a", priority=2), WorkflowState.STARTED)
        assert labels == {"tasklink", "tasklink:priority-2", "tasklink:in-progress"}

    def test_shortcut_labels(self, shortcut, make_task):
        """Stories carry only the base label."""
        assert shortcut.managed_labels(make_task("a"), WorkflowState.DONE) == {"tasklink"}


class TestCreate:
    """Tests for creating remote items."""

    @pytest.mark.asyncio
    async def test_one_issue_per_root(self, github, github_adapter, make_task, make_collection):
        """Descendants are embedded in the root's issue, not created separately."""
        collection = make_collection(
            make_task("root", "Root"),
            make_task("kid", "Kid", parent_id="root"),
        )

        outcomes = await github.sync_all(collection)

        assert len(github_adapter.created) == 1
        created = github_adapter.created[0]
        assert created["title"] == "Root"
        assert created["labels"] == {"tasklink", "tasklink:priority-1", "tasklink:pending"}
        assert parse_fields(created["body"], SUBTASK_NAMESPACE)["id"] == "kid"
        assert outcomes[0].created
        assert outcomes[0].link.identifier == 1
        assert outcomes[0].link.target == "acme/widgets"

    @pytest.mark.asyncio
    async def test_created_done_gets_result_comment(
        self, github, github_adapter, make_task, make_collection
    ):
        """Items created already closed receive the result as a comment."""
        collection = make_collection(make_task("root", completed=True, result="Shipped it"))

        outcomes = await github.sync_all(collection)

        assert github_adapter.created[0]["state"] is WorkflowState.DONE
        assert github_adapter.comments == [(1, "## Result\n\nShipped it")]
        assert outcomes[0].link.state is WorkflowState.DONE

    @pytest.mark.asyncio
    async def test_started_collapses_on_open_closed_tracker(
        self, github, github_adapter, make_task, make_collection
    ):
        """STARTED is written as open; the label carries the distinction."""
        collection = make_collection(make_task("root", started_at=datetime(2024, 1, 16)))

        await github.sync_all(collection)

        created = github_adapter.created[0]
        assert created["state"] is WorkflowState.UNSTARTED
        assert "tasklink:in-progress" in created["labels"]

    @pytest.mark.asyncio
    async def test_started_native_state(
        self, shortcut, shortcut_adapter, make_task, make_collection
    ):
        """Trackers with a started state receive it directly."""
        collection = make_collection(make_task("root", started_at=datetime(2024, 1, 16)))

        outcomes = await shortcut.sync_all(collection)

        assert shortcut_adapter.created[0]["state"] is WorkflowState.STARTED
        assert outcomes[0].link.state is WorkflowState.STARTED


class TestIdempotence:
    """A second run with persisted links writes nothing."""

    @pytest.mark.asyncio
    async def test_github_second_run_skips(
        self, github, github_adapter, make_task, make_collection
    ):
        """Unchanged tasks are skipped on the next run."""
        collection = make_collection(
            make_task("one", description="First"),
            make_task("kid", parent_id="one", completed=True),
            make_task("two", started_at=datetime(2024, 1, 16)),
            make_task("three", completed=True),
        )
        first = await github.sync_all(collection)
        writes = (len(github_adapter.created), len(github_adapter.updated))

        second = await github.sync_all(with_links(collection, first, "github"))

        assert (len(github_adapter.created), len(github_adapter.updated)) == writes
        assert all(o.skipped for o in second)

    @pytest.mark.asyncio
    async def test_shortcut_second_run_skips(
        self, shortcut, shortcut_adapter, make_task, make_collection
    ):
        """Sub-stories are skipped too once their links are stored."""
        collection = make_collection(
            make_task("root"),
            make_task("kid", parent_id="root"),
            make_task("grand", parent_id="kid"),
        )
        first = await shortcut.sync_all(collection)
        assert len(shortcut_adapter.created) == 3

        second = await shortcut.sync_all(with_links(collection, first, "shortcut"))

        assert len(shortcut_adapter.created) == 3
        assert shortcut_adapter.updated == []
        assert second[0].skipped
        assert second[0].subtask_outcomes[0].skipped
        assert second[0].subtask_outcomes[0].subtask_outcomes[0].skipped

    @pytest.mark.asyncio
    async def test_force_update(self, github, github_adapter, make_task, make_collection):
        """skip_unchanged=False rewrites items even when nothing changed."""
        collection = make_collection(make_task("root"))
        first = await github.sync_all(collection)

        await github.sync_all(with_links(collection, first, "github"), skip_unchanged=False)

        assert len(github_adapter.updated) == 1


class TestCommitGating:
    """Completed tasks close only once their commit is on the remote."""

    @pytest.mark.asyncio
    async def test_unpushed_commit_stays_open(self, github_adapter, make_task, make_collection):
        """The item stays open and the outcome says why."""
        reconciler = GitHubReconciler(github_adapter, "tasklink", commit_verifier=unverified)
        collection = make_collection(make_task("root", completed=True, commit=UNPUSHED))

        outcomes = await reconciler.sync_all(collection)

        assert github_adapter.created[0]["state"] is WorkflowState.UNSTARTED
        assert outcomes[0].link.state is WorkflowState.UNSTARTED
        assert outcomes[0].not_closing_reason == "commit deadbee not pushed to remote"

    @pytest.mark.asyncio
    async def test_pushed_commit_closes(self, github, github_adapter, make_task, make_collection):
        """A verified commit lets the item close."""
        collection = make_collection(make_task("root", completed=True, commit=UNPUSHED))

        outcomes = await github.sync_all(collection)

        assert github_adapter.created[0]["state"] is WorkflowState.DONE
        assert outcomes[0].link.state is WorkflowState.DONE
        assert outcomes[0].not_closing_reason is None

    @pytest.mark.asyncio
    async def test_unpushed_descendant_not_marked_complete(
        self, github_adapter, make_task, make_collection
    ):
        """Embedded descendants show completed only once verified."""
        reconciler = GitHubReconciler(github_adapter, "tasklink", commit_verifier=unverified)
        collection = make_collection(
            make_task("root"),
            make_task("kid", parent_id="root", completed=True, commit=UNPUSHED),
        )

        await reconciler.sync_all(collection)

        parsed = parse_issue_body(github_adapter.created[0]["body"])
        assert parsed.descendants[0].fields.completed is False

    @pytest.mark.asyncio
    async def test_push_later_closes_on_next_run(
        self, github_adapter, make_task, make_collection
    ):
        """Once the commit lands the next run closes the item."""
        collection = make_collection(make_task("root", completed=True, commit=UNPUSHED))
        first = await GitHubReconciler(
            github_adapter, "tasklink", commit_verifier=unverified
        ).sync_all(collection)

        second = await GitHubReconciler(
            github_adapter, "tasklink", commit_verifier=verified
        ).sync_all(with_links(collection, first, "github"))

        assert github_adapter.updated[0]["state"] is WorkflowState.DONE
        assert second[0].link.state is WorkflowState.DONE
        assert second[0].not_closing_reason is None


class TestRegressionGuard:
    """A remote item seen in the terminal state is never reopened."""

    @pytest.mark.asyncio
    async def test_observed_done_is_pinned(
        self, github, github_adapter, make_task, make_collection
    ):
        """Stale local state cannot reopen a closed issue."""
        github_adapter.seed(
            "<!-- tasklink:task:id:root -->\nOld body", state=WorkflowState.DONE, identifier=1
        )
        collection = make_collection(make_task("root", links={"github": link(1)}))

        outcomes = await github.sync_all(collection)

        assert len(github_adapter.updated) == 1
        update = github_adapter.updated[0]
        assert update["state"] is WorkflowState.DONE
        assert "tasklink:completed" in update["labels"]
        assert outcomes[0].link.state is WorkflowState.DONE

    @pytest.mark.asyncio
    async def test_unknown_state_with_done_link_leaves_state(
        self, failing_adapter, make_task, make_collection
    ):
        """When the current state cannot be read the state is not written."""
        failing_adapter.seed("<!-- tasklink:task:id:root -->", state=WorkflowState.DONE)
        reconciler = GitHubReconciler(failing_adapter, "tasklink", commit_verifier=verified)
        task = make_task("root", links={"github": link(1, WorkflowState.DONE)})

        outcome = await reconciler.sync_task(task, make_collection(task))

        update = failing_adapter.updated[0]
        assert update["state"] is None
        assert "tasklink:completed" in update["labels"]
        assert outcome.link.state is WorkflowState.DONE

    @pytest.mark.asyncio
    async def test_unknown_state_open_task_leaves_state(
        self, failing_adapter, make_task, make_collection
    ):
        """Non-terminal states are not asserted blind."""
        failing_adapter.seed("<!-- tasklink:task:id:root -->")
        reconciler = GitHubReconciler(failing_adapter, "tasklink", commit_verifier=verified)
        task = make_task("root", links={"github": link(1)})

        await reconciler.sync_task(task, make_collection(task))

        assert failing_adapter.updated[0]["state"] is None

    @pytest.mark.asyncio
    async def test_unknown_state_done_task_closes(
        self, failing_adapter, make_task, make_collection
    ):
        """Moving to terminal is safe even without a read."""
        failing_adapter.seed("<!-- tasklink:task:id:root -->")
        reconciler = GitHubReconciler(failing_adapter, "tasklink", commit_verifier=verified)
        task = make_task("root", completed=True, links={"github": link(1)})

        outcome = await reconciler.sync_task(task, make_collection(task))

        assert failing_adapter.updated[0]["state"] is WorkflowState.DONE
        assert outcome.link.state is WorkflowState.DONE

    @pytest.mark.asyncio
    async def test_no_write_ever_moves_done_backwards(
        self, shortcut, shortcut_adapter, make_task, make_collection
    ):
        """Neither the root nor its sub-stories are reopened."""
        shortcut_adapter.seed(
            "<!-- tasklink:task:id:root -->", state=WorkflowState.DONE, identifier=1
        )
        shortcut_adapter.seed(
            "<!-- tasklink:task:id:kid -->", state=WorkflowState.DONE, identifier=2
        )
        collection = make_collection(
            make_task("root", started_at=datetime(2024, 1, 16), links={"shortcut": link(1)}),
            make_task("kid", parent_id="root", links={"shortcut": link(2)}),
        )

        await shortcut.sync_all(collection)

        assert shortcut_adapter.created == []
        assert [u["state"] for u in shortcut_adapter.updated] == [
            WorkflowState.DONE,
            WorkflowState.DONE,
        ]


class TestLookup:
    """Tests for finding existing remote items."""

    @pytest.mark.asyncio
    async def test_listing_fetched_once(self, github, github_adapter, make_task, make_collection):
        """One scan serves every root in a run."""
        collection = make_collection(make_task("a"), make_task("b"), make_task("c"))

        await github.sync_all(collection)

        assert github_adapter.list_calls == 1

    @pytest.mark.asyncio
    async def test_matches_any_listed_item(
        self, github, github_adapter, make_task, make_collection
    ):
        """Items far down the listing are matched by embedded id."""
        for number in range(1, 238):
            github_adapter.seed(f"<!-- tasklink:task:id:t{number} -->", identifier=number)
        collection = make_collection(make_task("t237"))

        outcomes = await github.sync_all(collection)

        assert github_adapter.created == []
        assert outcomes[0].link.identifier == 237

    @pytest.mark.asyncio
    async def test_adopts_item_by_embedded_id(
        self, github, github_adapter, make_task, make_collection
    ):
        """An unlinked task reuses the item that already carries its id."""
        github_adapter.seed("<!-- tasklink:task:id:root -->", title="Old title", identifier=7)
        collection = make_collection(make_task("root", "New title"))

        outcomes = await github.sync_all(collection)

        assert github_adapter.created == []
        assert github_adapter.updated[0]["identifier"] == 7
        assert outcomes[0].updated
        assert outcomes[0].link.identifier == 7

    @pytest.mark.asyncio
    async def test_malformed_metadata_means_create(
        self, github, github_adapter, make_task, make_collection
    ):
        """An item whose metadata cannot be decoded is not adopted."""
        github_adapter.seed(
            "<!-- tasklink:task:id:root -->\n<!-- tasklink:task:result:base64:not*base64! -->",
            identifier=4,
        )
        github_adapter.seed("<!-- tasklink:task:id:base64:not*base64! -->", identifier=5)
        collection = make_collection(make_task("root"))

        outcomes = await github.sync_all(collection)

        assert len(github_adapter.created) == 1
        assert github_adapter.updated == []
        assert outcomes[0].created is True
        assert outcomes[0].link.identifier == 6

    @pytest.mark.asyncio
    async def test_missing_linked_item_is_recreated(
        self, github, github_adapter, make_task, make_collection
    ):
        """A link to a deleted item falls back to creating a new one."""
        collection = make_collection(make_task("root", links={"github": link(99)}))

        outcomes = await github.sync_all(collection)

        assert github_adapter.get_calls == [99]
        assert outcomes[0].created
        assert outcomes[0].link.identifier == 1

    @pytest.mark.asyncio
    async def test_fast_path_skips_lookup(self, github, github_adapter, make_task, make_collection):
        """Done locally and remotely needs no remote reads."""
        collection = make_collection(
            make_task("root", completed=True, links={"github": link(5, WorkflowState.DONE)})
        )

        outcomes = await github.sync_all(collection)

        assert github_adapter.get_calls == []
        assert outcomes[0].skipped
        assert outcomes[0].link.identifier == 5

    @pytest.mark.asyncio
    async def test_sync_task_resolves_root(
        self, github, github_adapter, make_task, make_collection
    ):
        """Syncing a subtask syncs the issue of its root."""
        kid = make_task("kid", parent_id="root")
        collection = make_collection(make_task("root"), kid)

        outcome = await github.sync_task(kid, collection)

        assert outcome.task_id == "root"
        assert github_adapter.list_calls == 1

    @pytest.mark.asyncio
    async def test_sync_task_orphan(self, github, make_task, make_collection):
        """A subtask whose root is missing is not synced."""
        orphan = make_task("kid", parent_id="gone")

        assert await github.sync_task(orphan, make_collection(orphan)) is None


class TestErrors:
    """Tests for failure handling during a run."""

    @pytest.mark.asyncio
    async def test_task_failure_is_isolated(
        self, github, github_adapter, make_task, make_collection
    ):
        """One failing root does not stop the others."""
        github_adapter.create_errors["Broken"] = RemoteError("HTTP 422", status_code=422)
        collection = make_collection(make_task("bad", "Broken"), make_task("good", "Fine"))

        outcomes = await github.sync_all(collection)

        assert outcomes[0].failed
        assert "HTTP 422" in outcomes[0].error
        assert outcomes[1].created

    @pytest.mark.asyncio
    async def test_auth_failure_aborts_run(
        self, github, github_adapter, make_task, make_collection
    ):
        """Rejected credentials stop the whole run."""
        github_adapter.create_errors["Task a"] = RemoteAuthError("Bad credentials")
        collection = make_collection(make_task("a"), make_task("b"))

        with pytest.raises(RemoteAuthError):
            await github.sync_all(collection)
        assert github_adapter.created == []

    @pytest.mark.asyncio
    async def test_listing_failure_aborts_run(
        self, github, github_adapter, make_task, make_collection
    ):
        """Without the listing no task is attempted."""
        github_adapter.list_error = RemoteError("HTTP 500", status_code=500)

        with pytest.raises(RemoteError):
            await github.sync_all(make_collection(make_task("a")))
        assert github_adapter.created == []

    @pytest.mark.asyncio
    async def test_substory_failure_is_isolated(
        self, shortcut, shortcut_adapter, make_task, make_collection
    ):
        """A failing sub-story is recorded on its own outcome."""
        shortcut_adapter.create_errors["Task kid"] = RemoteError("HTTP 400", status_code=400)
        collection = make_collection(
            make_task("root"),
            make_task("kid", parent_id="root"),
            make_task("other", parent_id="root", priority=2),
        )

        outcomes = await shortcut.sync_all(collection)

        root = outcomes[0]
        assert root.created
        assert [(o.task_id, o.failed) for o in root.subtask_outcomes] == [
            ("kid", True),
            ("other", False),
        ]


class TestProgress:
    """Tests for progress reporting."""

    @pytest.mark.asyncio
    async def test_phases_reported_per_root(self, github, make_task, make_collection):
        """Each root reports checking, then what happened."""
        events = []
        collection = make_collection(make_task("a"), make_task("b"))

        await github.sync_all(collection, on_progress=events.append)

        assert [(e.index, e.total, e.phase) for e in events] == [
            (1, 2, SyncPhase.CHECKING),
            (1, 2, SyncPhase.CREATING),
            (2, 2, SyncPhase.CHECKING),
            (2, 2, SyncPhase.CREATING),
        ]
        assert events[2].task.id == "b"

    @pytest.mark.asyncio
    async def test_skip_and_update_phases(
        self, github, github_adapter, make_task, make_collection
    ):
        """Unchanged roots report skipped, changed ones updating."""
        collection = make_collection(make_task("a"), make_task("b"))
        linked = with_links(collection, await github.sync_all(collection), "github")
        renamed = linked.replace(linked.get("b").model_copy(update={"name": "Renamed"}))
        events = []

        await github.sync_all(renamed, on_progress=events.append)

        assert [e.phase for e in events if e.phase is not SyncPhase.CHECKING] == [
            SyncPhase.SKIPPED,
            SyncPhase.UPDATING,
        ]


class TestPullFromRemote:
    """Newer remote metadata is pulled back instead of overwritten."""

    @pytest.mark.asyncio
    async def test_pulls_newer_root_and_descendants(
        self, github, github_adapter, make_task, make_collection, later
    ):
        """Remote completion and results come back as local updates."""
        newer_root = make_task(
            "root", completed=True, result="Done upstream", updated_at=later(10)
        )
        newer_kid = make_task("kid", parent_id="root", completed=True, updated_at=later(10))
        body = render_issue_body(newer_root, collect_descendants([newer_root, newer_kid], "root"))
        github_adapter.seed(body, identifier=1)
        collection = make_collection(
            make_task("root", links={"github": link(1)}),
            make_task("kid", parent_id="root"),
        )

        outcomes = await github.sync_all(collection)

        outcome = outcomes[0]
        assert github_adapter.updated == []
        assert outcome.pulled_from_remote
        assert outcome.local_updates["completed"] is True
        assert outcome.local_updates["result"] == "Done upstream"
        assert outcome.local_updates["updated_at"] == later(10)
        assert outcome.link.identifier == 1
        assert [o.task_id for o in outcome.subtask_outcomes] == ["kid"]
        assert outcome.subtask_outcomes[0].local_updates["completed"] is True

    @pytest.mark.asyncio
    async def test_pulls_started_at(
        self, github, github_adapter, make_task, make_collection, later
    ):
        """A task started on the remote side is started locally."""
        started = make_task("root", started_at=later(5), updated_at=later(10))
        github_adapter.seed(render_issue_body(started, []), identifier=1)
        collection = make_collection(make_task("root", links={"github": link(1)}))

        outcomes = await github.sync_all(collection)

        assert outcomes[0].pulled_from_remote
        assert outcomes[0].local_updates["started_at"] == later(5)
        assert "completed" not in outcomes[0].local_updates

    @pytest.mark.asyncio
    async def test_older_remote_is_overwritten(
        self, github, github_adapter, make_task, make_collection, later
    ):
        """Local changes win when the local task is newer."""
        github_adapter.seed("<!-- tasklink:task:id:root -->\n", identifier=1)
        collection = make_collection(
            make_task("root", "Renamed", updated_at=later(10), links={"github": link(1)})
        )

        outcomes = await github.sync_all(collection)

        assert not outcomes[0].pulled_from_remote
        assert github_adapter.updated[0]["title"] == "Renamed"

    @pytest.mark.asyncio
    async def test_shortcut_never_pulls(
        self, shortcut, shortcut_adapter, make_task, make_collection, later
    ):
        """Only the embedded-hierarchy provider pulls state back."""
        newer = make_task("root", completed=True, updated_at=later(10))
        body = render_issue_body(newer, [])
        shortcut_adapter.seed(body, identifier=1)
        collection = make_collection(make_task("root", links={"shortcut": link(1)}))

        outcomes = await shortcut.sync_all(collection)

        assert not outcomes[0].pulled_from_remote
        assert len(shortcut_adapter.updated) == 1


class TestShortcutSubstories:
    """Descendants become native sub-stories."""

    @pytest.mark.asyncio
    async def test_children_created_under_parent(
        self, shortcut, shortcut_adapter, make_task, make_collection
    ):
        """Each child is created with its parent's story id, depth first."""
        collection = make_collection(
            make_task("root"),
            make_task("a", parent_id="root", priority=2),
            make_task("b", parent_id="root", priority=1),
            make_task("b1", parent_id="b"),
        )

        outcomes = await shortcut.sync_all(collection)

        created = [(c["title"], c["parent"]) for c in shortcut_adapter.created]
        assert created == [
            ("Task root", None),
            ("Task b", 1),
            ("Task b1", 2),
            ("Task a", 1),
        ]
        root = outcomes[0]
        assert [o.task_id for o in root.subtask_outcomes] == ["b", "a"]
        assert [o.task_id for o in root.subtask_outcomes[0].subtask_outcomes] == ["b1"]


class TestCloseRemote:
    """Tests for explicitly closing a linked item."""

    @pytest.mark.asyncio
    async def test_closes_open_item(self, github, github_adapter, make_task):
        """The item moves to DONE with its content untouched."""
        github_adapter.seed("Body", title="Keep me", identifier=3)

        result = await github.close_remote(make_task("root", links={"github": link(3)}))

        update = github_adapter.updated[0]
        assert update["state"] is WorkflowState.DONE
        assert update["title"] == "Keep me"
        assert result.state is WorkflowState.DONE

    @pytest.mark.asyncio
    async def test_already_closed(self, github, github_adapter, make_task):
        """Closed items are not written again."""
        github_adapter.seed("Body", state=WorkflowState.DONE, identifier=3)

        result = await github.close_remote(make_task("root", links={"github": link(3)}))

        assert github_adapter.updated == []
        assert result.state is WorkflowState.DONE

    @pytest.mark.asyncio
    async def test_unlinked_or_missing(self, github, make_task):
        """Nothing to close without a live linked item."""
        assert await github.close_remote(make_task("root")) is None
        assert await github.close_remote(make_task("root", links={"github": link(42)})) is None
