"""Terminal outcomes a submission assigns to each commit."""

from enum import Enum


class Outcome(str, Enum):
    """Closed set of results, each with the text shown to reviewers.

    The message depends only on the outcome, never on which
    integration policy produced it.
    """

    CLEAN_MERGE = "clean-merge"
    CLEAN_PICK = "clean-pick"
    CLEAN_REBASE = "clean-rebase"
    ALREADY_MERGED = "already-merged"
    PATH_CONFLICT = "path-conflict"
    MISSING_DEPENDENCY = "missing-dependency"
    NO_PATCH_SET = "no-patch-set"
    REVISION_GONE = "revision-gone"
    NO_SUBMIT_TYPE = "no-submit-type"
    MANUAL_RECURSIVE_MERGE = "manual-recursive-merge"
    CANNOT_CHERRY_PICK_ROOT = "cannot-cherry-pick-root"
    CANNOT_REBASE_ROOT = "cannot-rebase-root"
    NOT_FAST_FORWARD = "not-fast-forward"
    NO_CREDENTIALS = "no-credentials"
    NO_TICKET = "no-ticket"
    EXTERNAL_SYNC_FAILED = "external-sync-failed"
    BLOCKED = "blocked"
    INTERNAL_ERROR = "internal-error"
    INVALID_PROJECT_CONFIGURATION = "invalid-project-configuration"
    INVALID_PROJECT_CONFIGURATION_PARENT_PROJECT_NOT_FOUND = (
        "invalid-project-configuration-parent-project-not-found"
    )
    INVALID_PROJECT_CONFIGURATION_ROOT_PROJECT_CANNOT_HAVE_PARENT = (
        "invalid-project-configuration-root-project-cannot-have-parent"
    )
    SETTING_PARENT_PROJECT_ONLY_ALLOWED_BY_ADMIN = (
        "setting-parent-project-only-allowed-by-admin"
    )

    @property
    def message(self) -> str:
        """Explanation recorded on the change."""
        return _MESSAGES[self]

    @property
    def is_clean(self) -> bool:
        """True when the commit ended up on the destination branch."""
        return self in _CLEAN


_CLEAN = frozenset({
    Outcome.CLEAN_MERGE,
    Outcome.CLEAN_PICK,
    Outcome.CLEAN_REBASE,
    Outcome.ALREADY_MERGED,
})

_MESSAGES = {
    Outcome.CLEAN_MERGE: (
        "Change has been successfully merged into the git repository."
    ),
    Outcome.CLEAN_PICK: "Change has been successfully cherry-picked.",
    Outcome.CLEAN_REBASE: "Change has been successfully rebased.",
    Outcome.ALREADY_MERGED: (
        "Change is already part of the destination branch."
    ),
    Outcome.PATH_CONFLICT: (
        "The change could not be merged due to a path conflict.\n"
        "\n"
        "Please rebase the change locally and upload the rebased "
        "commit for review."
    ),
    Outcome.MISSING_DEPENDENCY: (
        "The change depends on a commit that is neither on the "
        "destination branch nor part of this submission.\n"
        "\n"
        "Please submit its dependencies first."
    ),
    Outcome.NO_PATCH_SET: "The change has no current patch set.",
    Outcome.REVISION_GONE: (
        "The commit of the current patch set no longer exists."
    ),
    Outcome.NO_SUBMIT_TYPE: (
        "No submit type is configured for the destination branch."
    ),
    Outcome.MANUAL_RECURSIVE_MERGE: (
        "The change requires a local merge to resolve.\n"
        "\n"
        "Please merge (or rebase) the change locally and upload the "
        "resolution for review."
    ),
    Outcome.CANNOT_CHERRY_PICK_ROOT: (
        "Cannot cherry-pick an initial commit onto an existing branch.\n"
        "\n"
        "Please merge the change locally and upload the merge commit "
        "for review."
    ),
    Outcome.CANNOT_REBASE_ROOT: (
        "Cannot rebase an initial commit onto an existing branch.\n"
        "\n"
        "Please merge the change locally and upload the merge commit "
        "for review."
    ),
    Outcome.NOT_FAST_FORWARD: (
        "Project policy requires all submissions to be a fast-forward.\n"
        "\n"
        "Please rebase the change locally and upload again for review."
    ),
    Outcome.NO_CREDENTIALS: (
        "Target branch is kept in sync with the external version "
        "control system.\n"
        "Changes submitted to this branch are also committed there.\n"
        "The submitter must configure an external username and key "
        "in the account settings."
    ),
    Outcome.NO_TICKET: (
        "Cannot merge the change, because no ticket was specified.\n"
        "Please add a review comment with the ticket number in the "
        "format 'TICKET: <ticket number>' or add it to the commit "
        "message."
    ),
    Outcome.EXTERNAL_SYNC_FAILED: (
        "Could not merge the change to the external version control "
        "system. See previous change message for details."
    ),
    Outcome.BLOCKED: (
        "The change was not merged because a related change in the "
        "same submission could not be merged.\n"
        "\n"
        "Please submit it again once the related change is resolved."
    ),
    Outcome.INTERNAL_ERROR: (
        "The change could not be merged because of an internal error "
        "while reading the repository.\n"
        "\n"
        "Please try submitting again; contact an administrator if "
        "the problem persists."
    ),
    Outcome.INVALID_PROJECT_CONFIGURATION: (
        "Change contains an invalid project configuration."
    ),
    Outcome.INVALID_PROJECT_CONFIGURATION_PARENT_PROJECT_NOT_FOUND: (
        "Change contains an invalid project configuration:\n"
        "Parent project does not exist."
    ),
    Outcome.INVALID_PROJECT_CONFIGURATION_ROOT_PROJECT_CANNOT_HAVE_PARENT: (
        "Change contains an invalid project configuration:\n"
        "The root project cannot have a parent."
    ),
    Outcome.SETTING_PARENT_PROJECT_ONLY_ALLOWED_BY_ADMIN: (
        "Change contains a project configuration that changes the "
        "parent project.\n"
        "The change must be submitted by an administrator."
    ),
}
