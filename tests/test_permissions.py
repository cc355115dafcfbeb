"""Tests for effective permission resolution and the two user access views."""

import pytest

from airfocus_access.hierarchy import annotate_workspaces
from airfocus_access.models import Permission
from airfocus_access.permissions import PermissionResolver, max_permission

from conftest import make_group, make_workspace


def resolver_for(groups, workspaces) -> PermissionResolver:
    return PermissionResolver(groups, annotate_workspaces(workspaces, groups))


class TestMaxPermission:

    def test_keeps_highest(self):
        assert max_permission(Permission.READ, Permission.WRITE) is Permission.WRITE
        assert max_permission(Permission.FULL, Permission.COMMENT) is Permission.FULL
        assert max_permission(Permission.COMMENT, None) is Permission.COMMENT


class TestGroupPermission:

    def test_floor_is_read(self):
        resolver = resolver_for([make_group("g", "G")], [])
        assert resolver.group_permission("anyone", "g") is Permission.READ
        assert resolver.group_permission("anyone", "unknown") is Permission.READ

    @pytest.mark.parametrize("granting", ["a", "b", "c"])
    def test_full_anywhere_up_the_chain_gives_full(self, granting):
        groups = [
            make_group("a", "A", permissions={"u": "full"} if granting == "a" else {}),
            make_group("b", "B", parent_id="a", permissions={"u": "full"} if granting == "b" else {}),
            make_group("c", "C", parent_id="b", permissions={"u": "full"} if granting == "c" else {}),
        ]
        resolver = resolver_for(groups, [])
        assert resolver.group_permission("u", "c") is Permission.FULL

    def test_ancestor_grant_does_not_flow_down_to_parent(self):
        groups = [make_group("a", "A"), make_group("b", "B", parent_id="a", permissions={"u": "write"})]
        resolver = resolver_for(groups, [])
        assert resolver.group_permission("u", "a") is Permission.READ
        assert resolver.group_permission("u", "b") is Permission.WRITE

    def test_default_applies_to_everyone(self):
        groups = [make_group("a", "A", default="comment"), make_group("b", "B", parent_id="a")]
        resolver = resolver_for(groups, [])
        assert resolver.group_permission("stranger", "b") is Permission.COMMENT

    def test_cycle_does_not_hang(self):
        groups = [make_group("x", "X", parent_id="y", default="write"), make_group("y", "Y", parent_id="x")]
        resolver = resolver_for(groups, [])
        assert resolver.group_permission("u", "y") is Permission.WRITE


class TestWorkspacePermission:

    def test_inherits_nearest_higher_default(self):
        groups = [make_group("A", "A", default="read"), make_group("B", "B", parent_id="A", default="write")]
        workspaces = [make_workspace("W", "W", group_id="B")]
        resolver = resolver_for(groups, workspaces)

        assert resolver.workspace_permission("anyone", resolver.workspaces[0]) is Permission.WRITE

    def test_explicit_grant_above_group(self):
        groups = [make_group("g", "G", default="comment")]
        workspaces = [make_workspace("w", "W", permissions={"u": "full"}, group_id="g")]
        resolver = resolver_for(groups, workspaces)

        assert resolver.workspace_permission("u", resolver.workspaces[0]) is Permission.FULL

    def test_ungrouped_without_grant_is_read(self):
        resolver = resolver_for([], [make_workspace("w", "W")])
        assert resolver.workspace_permission("u", resolver.workspaces[0]) is Permission.READ


class TestUserViews:

    def setup_method(self):
        self.groups = [make_group("G", "Team", default="comment")]
        self.workspaces = [
            make_workspace("W1", "Ungrouped", permissions={"U": "write"}),
            make_workspace("W2", "Grouped", group_id="G"),
        ]
        self.resolver = resolver_for(self.groups, self.workspaces)

    def test_explicit_view_lists_only_direct_grants(self):
        grants = self.resolver.explicit_workspace_grants("U")

        assert [(g.workspace_id, g.permission) for g in grants] == [("W1", Permission.WRITE)]

    def test_group_view_lists_inherited_access(self):
        [access] = self.resolver.group_access("U")

        assert access.group.id == "G"
        assert access.permission is Permission.COMMENT
        assert [(w.workspace.id, w.permission) for w in access.workspaces] == [("W2", Permission.COMMENT)]

    def test_group_view_includes_every_group(self):
        resolver = resolver_for([make_group("a", "A"), make_group("b", "B")], [])
        assert [a.permission for a in resolver.group_access("nobody")] == [Permission.READ, Permission.READ]

    def test_workspace_permission_can_exceed_group(self):
        workspaces = [make_workspace("W3", "Special", permissions={"U": "full"}, group_id="G")]
        [access] = resolver_for(self.groups, workspaces).group_access("U")

        assert access.permission is Permission.COMMENT
        assert access.workspaces[0].permission is Permission.FULL

    def test_explicit_view_sorted_by_path_then_name(self):
        groups = [make_group("p", "Parent"), make_group("c", "Child", parent_id="p"), make_group("q", "Alpha")]
        workspaces = [
            make_workspace("w1", "zeta", permissions={"U": "read"}),
            make_workspace("w2", "beta", permissions={"U": "read"}, group_id="c"),
            make_workspace("w3", "alpha", permissions={"U": "read"}, group_id="c"),
            make_workspace("w4", "omega", permissions={"U": "read"}, group_id="q"),
        ]
        grants = resolver_for(groups, workspaces).explicit_workspace_grants("U")

        assert [(g.group_path, g.workspace_name) for g in grants] == [
            ("Alpha", "omega"),
            ("Parent > Child", "alpha"),
            ("Parent > Child", "beta"),
            ("", "zeta"),
        ]
