"""
LeadDesk CRM - Role table tests
Tests:
1. Every role table covers every role
2. Creatable roles / reporting role per role
3. Leaf and top role helpers
4. Raw values and enum members are interchangeable
"""

import pytest

from models.role import (
    CREATABLE_ROLES,
    REPORTS_TO_ROLE,
    ROLE_DISPLAY_NAMES,
    ROLE_RANK,
    UserRole,
    can_create_role,
    get_creatable_roles,
    get_reporting_role,
    get_role_display_name,
    get_role_rank,
    is_leaf_role,
    is_top_role,
    to_role,
)


class TestRoleTables:

    @pytest.mark.parametrize("table", [ROLE_RANK, CREATABLE_ROLES, REPORTS_TO_ROLE, ROLE_DISPLAY_NAMES])
    def test_table_covers_every_role(self, table):
        assert set(table) == set(UserRole)

    def test_reporting_chain_walks_down_one_rank(self):
        for role, parent in REPORTS_TO_ROLE.items():
            if parent is None:
                assert role == UserRole.ADMIN
            else:
                assert get_role_rank(parent) == get_role_rank(role) + 1

    def test_role_values(self):
        assert [r.value for r in UserRole] == ["admin", "manager", "team-leader", "user"]


class TestRoleLookups:

    def test_creatable_roles(self):
        assert get_creatable_roles("admin") == [UserRole.MANAGER, UserRole.TEAM_LEADER, UserRole.USER]
        assert get_creatable_roles(UserRole.MANAGER) == [UserRole.TEAM_LEADER, UserRole.USER]
        assert get_creatable_roles("team-leader") == [UserRole.USER]
        assert get_creatable_roles("user") == []

    def test_creatable_roles_is_a_copy(self):
        roles = get_creatable_roles("admin")
        roles.clear()
        assert get_creatable_roles("admin")

    def test_reporting_role(self):
        assert get_reporting_role("admin") is None
        assert get_reporting_role("manager") == UserRole.ADMIN
        assert get_reporting_role("team-leader") == UserRole.MANAGER
        assert get_reporting_role("user") == UserRole.TEAM_LEADER

    def test_can_create_role(self):
        assert can_create_role("manager", "user")
        assert not can_create_role("manager", "manager")
        assert not can_create_role("team-leader", "manager")
        assert not can_create_role("user", "user")
        assert not can_create_role("admin", "admin")

    def test_top_and_leaf(self):
        assert is_top_role("admin")
        assert not is_top_role(UserRole.MANAGER)
        assert is_leaf_role("user")
        assert not is_leaf_role("team-leader")

    def test_display_names(self):
        assert get_role_display_name("team-leader") == "Team Leader"
        assert get_role_display_name(UserRole.ADMIN) == "Admin"
        assert get_role_display_name("ghost") == "ghost"

    def test_unknown_role_raises(self):
        with pytest.raises(ValueError):
            to_role("super_admin")
