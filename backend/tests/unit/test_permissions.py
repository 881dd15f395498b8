"""Unit tests for the permission evaluator"""

import itertools

import pytest

from domain.lifecycle import (
    Action,
    ActorPermission,
    ActorRole,
    ChangeStatus,
    DocumentStatus,
    ReasonCode,
    SecurityLevel,
    allowed_actions,
    can_perform,
    evaluate,
)
from domain.lifecycle.transitions import TransitionClass, transition_class
from factories import DEPARTMENT, OTHER_DEPARTMENT, make_actor, make_document


def authored_by(actor, **overrides):
    return make_document(author_id=actor.id, **overrides)


PRIVILEGED_PAIRS = [
    pair for pair in itertools.product(DocumentStatus, DocumentStatus)
    if transition_class(*pair) == TransitionClass.PRIVILEGED
]


class TestAdmin:
    """Rule 1: admin is allowed everything"""

    @pytest.mark.parametrize("action", [a for a in Action if a != Action.CREATE])
    def test_admin_allowed_every_plain_action(self, action):
        admin = make_actor(ActorRole.ADMIN, "IT")
        document = make_document(status=DocumentStatus.PUBLISHED, department=OTHER_DEPARTMENT)
        assert can_perform(admin, document, action) is True

    @pytest.mark.parametrize("pair", PRIVILEGED_PAIRS)
    def test_admin_allowed_privileged_transitions(self, pair):
        admin = make_actor(ActorRole.ADMIN, "IT")
        document = make_document(status=pair[0])
        assert can_perform(admin, document, ChangeStatus(*pair)) is True


class TestAuthor:
    """Rule 2: authors manage their own drafts"""

    def test_author_edits_and_deletes_own_draft(self):
        author = make_actor()
        document = authored_by(author)
        assert can_perform(author, document, Action.EDIT) is True
        assert can_perform(author, document, Action.DELETE) is True

    def test_author_cannot_edit_after_draft(self):
        author = make_actor()
        document = authored_by(author, status=DocumentStatus.REVIEW)
        decision = evaluate(author, document, Action.EDIT)
        assert decision.allowed is False
        assert decision.reason == ReasonCode.WRONG_STATUS

    def test_author_may_create_versions_in_any_live_status(self):
        author = make_actor()
        for status in (DocumentStatus.DRAFT, DocumentStatus.REVIEW, DocumentStatus.PUBLISHED, DocumentStatus.ARCHIVED):
            assert can_perform(author, authored_by(author, status=status), Action.CREATE_VERSION) is True

    def test_author_cannot_approve_own_document(self):
        author = make_actor()
        document = authored_by(author, status=DocumentStatus.REVIEW)
        assert can_perform(author, document, Action.APPROVE) is False

    def test_non_author_edit_denied_not_owner(self):
        colleague = make_actor()
        decision = evaluate(colleague, make_document(), Action.EDIT)
        assert decision.allowed is False
        assert decision.reason == ReasonCode.NOT_OWNER


class TestManager:
    """Rule 3: department managers"""

    def test_manager_same_department_edits_and_deletes(self):
        manager = make_actor(ActorRole.MANAGER)
        document = make_document(status=DocumentStatus.REVIEW)
        assert can_perform(manager, document, Action.EDIT) is True
        assert can_perform(manager, document, Action.DELETE) is True

    def test_manager_approves_only_in_review(self):
        manager = make_actor(ActorRole.MANAGER)
        assert can_perform(manager, make_document(status=DocumentStatus.REVIEW), Action.APPROVE) is True
        decision = evaluate(manager, make_document(status=DocumentStatus.DRAFT), Action.APPROVE)
        assert decision.allowed is False
        assert decision.reason == ReasonCode.WRONG_STATUS

    def test_manager_archives_only_published(self):
        manager = make_actor(ActorRole.MANAGER)
        assert can_perform(manager, make_document(status=DocumentStatus.PUBLISHED), Action.ARCHIVE) is True
        assert can_perform(manager, make_document(status=DocumentStatus.REVIEW), Action.ARCHIVE) is False

    def test_manager_restores_only_archived(self):
        manager = make_actor(ActorRole.MANAGER)
        assert can_perform(manager, make_document(status=DocumentStatus.ARCHIVED), Action.RESTORE) is True
        assert can_perform(manager, make_document(status=DocumentStatus.PUBLISHED), Action.RESTORE) is False

    def test_manager_other_department_denied(self):
        manager = make_actor(ActorRole.MANAGER, OTHER_DEPARTMENT)
        decision = evaluate(manager, make_document(status=DocumentStatus.REVIEW), Action.APPROVE)
        assert decision.allowed is False
        assert decision.reason == ReasonCode.WRONG_DEPARTMENT


class TestExplicitGrants:
    """Rule 4: grants override department and role"""

    def test_approve_grant_in_other_department(self):
        approver = make_actor(ActorRole.USER, OTHER_DEPARTMENT, [ActorPermission.APPROVE_DOCUMENTS])
        assert can_perform(approver, make_document(status=DocumentStatus.REVIEW), Action.APPROVE) is True

    def test_grant_keeps_status_precondition(self):
        approver = make_actor(ActorRole.USER, OTHER_DEPARTMENT, [ActorPermission.APPROVE_DOCUMENTS])
        decision = evaluate(approver, make_document(status=DocumentStatus.DRAFT), Action.APPROVE)
        assert decision.reason == ReasonCode.WRONG_STATUS

    def test_create_versions_grant(self):
        actor = make_actor(ActorRole.USER, OTHER_DEPARTMENT, [ActorPermission.CREATE_VERSIONS])
        assert can_perform(actor, make_document(status=DocumentStatus.PUBLISHED), Action.CREATE_VERSION) is True
        assert can_perform(actor, make_document(), Action.EDIT) is False

    def test_manage_documents_grant(self):
        controller = make_actor(ActorRole.USER, OTHER_DEPARTMENT, [ActorPermission.MANAGE_DOCUMENTS])
        assert can_perform(controller, make_document(status=DocumentStatus.PUBLISHED), Action.ARCHIVE) is True
        assert can_perform(controller, make_document(status=DocumentStatus.PUBLISHED), Action.EDIT) is True

    def test_default_deny_reason_for_plain_user(self):
        user = make_actor(ActorRole.USER, OTHER_DEPARTMENT)
        decision = evaluate(user, make_document(status=DocumentStatus.PUBLISHED), Action.ARCHIVE)
        assert decision.allowed is False
        assert decision.reason == ReasonCode.INSUFFICIENT_ROLE


class TestChangeStatus:
    """Rule 5: status changes"""

    @pytest.mark.parametrize("pair", PRIVILEGED_PAIRS)
    def test_privileged_needs_manage_documents_even_for_author_and_manager(self, pair):
        manager = make_actor(ActorRole.MANAGER)
        author = make_actor(ActorRole.USER)
        for actor in (manager, author):
            document = make_document(status=pair[0], author_id=author.id)
            decision = evaluate(actor, document, ChangeStatus(*pair))
            assert decision.allowed is False
            assert decision.reason == ReasonCode.PRIVILEGED_TRANSITION

    @pytest.mark.parametrize("pair", PRIVILEGED_PAIRS)
    def test_privileged_allowed_with_grant(self, pair):
        controller = make_actor(ActorRole.USER, OTHER_DEPARTMENT, [ActorPermission.MANAGE_DOCUMENTS])
        assert can_perform(controller, make_document(status=pair[0]), ChangeStatus(*pair)) is True

    def test_illegal_pair_denied(self):
        admin = make_actor(ActorRole.ADMIN)
        action = ChangeStatus(DocumentStatus.REVIEW, DocumentStatus.ARCHIVED)
        decision = evaluate(admin, make_document(status=DocumentStatus.REVIEW), action)
        assert decision.allowed is False
        assert decision.reason == ReasonCode.ILLEGAL_TRANSITION

    def test_terminal_document_denied(self):
        admin = make_actor(ActorRole.ADMIN)
        action = ChangeStatus(DocumentStatus.DISPOSED, DocumentStatus.ARCHIVED)
        decision = evaluate(admin, make_document(status=DocumentStatus.DISPOSED), action)
        assert decision.reason == ReasonCode.TERMINAL_STATE

    def test_author_submits_own_draft(self):
        author = make_actor()
        action = ChangeStatus(DocumentStatus.DRAFT, DocumentStatus.REVIEW)
        assert can_perform(author, authored_by(author), action) is True

    def test_colleague_cannot_submit_someone_elses_draft(self):
        colleague = make_actor()
        action = ChangeStatus(DocumentStatus.DRAFT, DocumentStatus.REVIEW)
        decision = evaluate(colleague, make_document(), action)
        assert decision.reason == ReasonCode.NOT_OWNER

    def test_manager_publishes_review(self):
        manager = make_actor(ActorRole.MANAGER, DEPARTMENT)
        action = ChangeStatus(DocumentStatus.REVIEW, DocumentStatus.PUBLISHED)
        assert can_perform(manager, make_document(status=DocumentStatus.REVIEW), action) is True

    def test_author_withdraws_from_review(self):
        author = make_actor()
        action = ChangeStatus(DocumentStatus.REVIEW, DocumentStatus.DRAFT)
        assert can_perform(author, authored_by(author, status=DocumentStatus.REVIEW), action) is True

    def test_author_cannot_publish_own_review(self):
        author = make_actor()
        action = ChangeStatus(DocumentStatus.REVIEW, DocumentStatus.PUBLISHED)
        assert can_perform(author, authored_by(author, status=DocumentStatus.REVIEW), action) is False

    def test_manager_restores_archived(self):
        manager = make_actor(ActorRole.MANAGER)
        action = ChangeStatus(DocumentStatus.ARCHIVED, DocumentStatus.PUBLISHED)
        assert can_perform(manager, make_document(status=DocumentStatus.ARCHIVED), action) is True

    def test_change_status_value_label(self):
        action = ChangeStatus(DocumentStatus.DRAFT, DocumentStatus.REVIEW)
        assert action.value == "changeStatus(draft,review)"


class TestVisibility:
    """view / download / share"""

    def test_same_department_views(self):
        assert can_perform(make_actor(), make_document(), Action.VIEW) is True

    def test_other_department_cannot_view_internal(self):
        decision = evaluate(make_actor(department=OTHER_DEPARTMENT), make_document(), Action.VIEW)
        assert decision.allowed is False
        assert decision.reason == ReasonCode.WRONG_DEPARTMENT

    def test_recipient_department_views(self):
        document = make_document(recipients=frozenset({OTHER_DEPARTMENT}))
        assert can_perform(make_actor(department=OTHER_DEPARTMENT), document, Action.VIEW) is True

    def test_public_documents_visible_to_all(self):
        document = make_document(security_level=SecurityLevel.PUBLIC)
        assert can_perform(make_actor(department="FIN"), document, Action.VIEW) is True

    def test_view_all_documents_grant(self):
        auditor = make_actor(ActorRole.USER, "FIN", [ActorPermission.VIEW_ALL_DOCUMENTS])
        assert can_perform(auditor, make_document(), Action.VIEW) is True

    def test_download_requires_published_for_plain_viewer(self):
        viewer = make_actor()
        decision = evaluate(viewer, make_document(status=DocumentStatus.REVIEW), Action.DOWNLOAD)
        assert decision.allowed is False
        assert decision.reason == ReasonCode.WRONG_STATUS
        assert can_perform(viewer, make_document(status=DocumentStatus.PUBLISHED), Action.DOWNLOAD) is True

    def test_author_downloads_own_draft(self):
        author = make_actor()
        assert can_perform(author, authored_by(author), Action.SHARE) is True

    def test_disposed_hidden_from_non_admins(self):
        decision = evaluate(make_actor(), make_document(status=DocumentStatus.DISPOSED), Action.VIEW)
        assert decision.reason == ReasonCode.TERMINAL_STATE
        assert can_perform(make_actor(ActorRole.ADMIN), make_document(status=DocumentStatus.DISPOSED), Action.VIEW)


class TestCreateAndActionSet:
    """create and the allowed-action map"""

    def test_guest_cannot_create(self):
        decision = evaluate(make_actor(ActorRole.GUEST), make_document(), Action.CREATE)
        assert decision.allowed is False
        assert decision.reason == ReasonCode.INSUFFICIENT_ROLE

    def test_user_can_create(self):
        assert can_perform(make_actor(), make_document(), Action.CREATE) is True

    def test_allowed_actions_covers_every_action_but_create(self):
        author = make_actor()
        actions = allowed_actions(author, authored_by(author))
        assert set(actions) == {a.value for a in Action} - {"create"}
        assert actions["edit"] is True
        assert actions["approve"] is False
        assert actions["createVersion"] is True

    def test_decision_is_truthy_only_when_allowed(self):
        assert bool(evaluate(make_actor(ActorRole.ADMIN), make_document(), Action.EDIT)) is True
        assert bool(evaluate(make_actor(ActorRole.GUEST), make_document(), Action.EDIT)) is False
