"""Unit tests for Machine filters."""

from datetime import datetime, timezone

from kcpguard.core.models import OwnerReference
from kcpguard.machines import (
    filter_machines,
    has_deletion_timestamp,
    has_outdated_configuration,
    matches_configuration_hash,
    older_than,
    owned_control_plane_machines,
)
from kcpguard.machines.filters import KUBEADM_CONTROL_PLANE_HASH_LABEL
from tests.factories import make_machine

T0 = datetime(2020, 1, 1, tzinfo=timezone.utc)
T1 = datetime(2020, 6, 1, tzinfo=timezone.utc)
T2 = datetime(2021, 1, 1, tzinfo=timezone.utc)


class TestOwnedControlPlaneMachines:
    """Tests for owned_control_plane_machines."""

    def test_matches_controller(self) -> None:
        """Test a Machine controlled by the named control plane matches."""
        machine = make_machine("m1", owner="cp")

        assert owned_control_plane_machines("cp")(machine) is True

    def test_other_control_plane(self) -> None:
        """Test a Machine controlled by another control plane does not match."""
        machine = make_machine("m1", owner="other")

        assert owned_control_plane_machines("cp")(machine) is False

    def test_other_kind(self) -> None:
        """Test a Machine controlled by a different kind does not match."""
        machine = make_machine("m1", owner="cp", owner_kind="MachineSet")

        assert owned_control_plane_machines("cp")(machine) is False

    def test_no_owner(self) -> None:
        """Test an orphan Machine does not match."""
        assert owned_control_plane_machines("cp")(make_machine("m1", owner=None)) is False

    def test_non_controller_owner(self) -> None:
        """Test an owner reference that is not the controller is ignored."""
        machine = make_machine("m1", owner=None)
        machine.owner_references = [
            OwnerReference(kind="KubeadmControlPlane", name="cp", controller=False)
        ]

        assert owned_control_plane_machines("cp")(machine) is False

    def test_none_machine(self) -> None:
        """Test a missing Machine never matches."""
        assert owned_control_plane_machines("cp")(None) is False


class TestHasDeletionTimestamp:
    """Tests for has_deletion_timestamp."""

    def test_deleting(self) -> None:
        """Test a Machine being deleted matches."""
        machine = make_machine("m1", deletion_timestamp=T1)

        assert has_deletion_timestamp()(machine) is True

    def test_not_deleting(self) -> None:
        """Test a live Machine does not match."""
        assert has_deletion_timestamp()(make_machine("m1")) is False

    def test_none_machine(self) -> None:
        """Test a missing Machine never matches."""
        assert has_deletion_timestamp()(None) is False


class TestConfigurationHash:
    """Tests for matches_configuration_hash and has_outdated_configuration."""

    def test_matching_hash(self) -> None:
        """Test a Machine with the current hash matches."""
        machine = make_machine("m1")
        machine.labels[KUBEADM_CONTROL_PLANE_HASH_LABEL] = "abc"

        assert matches_configuration_hash("abc")(machine) is True
        assert has_outdated_configuration("abc")(machine) is False

    def test_different_hash(self) -> None:
        """Test a Machine with another hash is outdated."""
        machine = make_machine("m1")
        machine.labels[KUBEADM_CONTROL_PLANE_HASH_LABEL] = "old"

        assert matches_configuration_hash("abc")(machine) is False
        assert has_outdated_configuration("abc")(machine) is True

    def test_missing_label(self) -> None:
        """Test a Machine without the hash label never matches and is outdated."""
        machine = make_machine("m1")

        assert matches_configuration_hash("abc")(machine) is False
        assert has_outdated_configuration("abc")(machine) is True

    def test_custom_label(self) -> None:
        """Test the hash label can be overridden."""
        machine = make_machine("m1")
        machine.labels["example.com/hash"] = "abc"

        assert matches_configuration_hash("abc", label="example.com/hash")(machine) is True

    def test_none_machine(self) -> None:
        """Test a missing Machine never matches either filter."""
        assert matches_configuration_hash("abc")(None) is False
        assert has_outdated_configuration("abc")(None) is False


class TestOlderThan:
    """Tests for older_than."""

    def test_older(self) -> None:
        """Test a Machine created before t matches."""
        assert older_than(T1)(make_machine("m1", created=T0)) is True

    def test_same_time_is_not_older(self) -> None:
        """Test the comparison is strict."""
        assert older_than(T1)(make_machine("m1", created=T1)) is False

    def test_newer(self) -> None:
        """Test a Machine created after t does not match."""
        assert older_than(T1)(make_machine("m1", created=T2)) is False

    def test_unknown_creation_time(self) -> None:
        """Test a Machine without a creation time does not match."""
        machine = make_machine("m1")
        machine.creation_timestamp = None

        assert older_than(T1)(machine) is False

    def test_none_machine(self) -> None:
        """Test a missing Machine never matches."""
        assert older_than(T1)(None) is False

    def test_naive_cutoff_is_utc(self) -> None:
        """Test a naive cutoff compares against timezone-aware creation times."""
        cutoff = datetime(2020, 6, 1)

        assert older_than(cutoff)(make_machine("m1", created=T0)) is True
        assert older_than(cutoff)(make_machine("m1", created=T1)) is False
        assert older_than(cutoff)(make_machine("m1", created=T2)) is False


class TestFilterMachines:
    """Tests for filter_machines."""

    def test_no_filters_returns_all(self) -> None:
        """Test every Machine is kept when no filter is given."""
        machines = [make_machine("a"), make_machine("b")]

        assert filter_machines(machines) == machines

    def test_filters_are_combined_with_and(self) -> None:
        """Test only Machines matching every filter are kept."""
        a = make_machine("a", owner="cp", created=T0)
        b = make_machine("b", owner="cp", created=T2)
        c = make_machine("c", owner="other", created=T0)

        result = filter_machines([a, b, c], owned_control_plane_machines("cp"), older_than(T1))

        assert [m.name for m in result] == ["a"]

    def test_preserves_order(self) -> None:
        """Test matching Machines keep their input order."""
        machines = [make_machine(name, owner="cp") for name in ("c", "a", "b")]

        result = filter_machines(machines, owned_control_plane_machines("cp"))

        assert [m.name for m in result] == ["c", "a", "b"]

    def test_accepts_iterables(self) -> None:
        """Test a generator of Machines can be filtered."""
        result = filter_machines(make_machine(name) for name in ("a", "b"))

        assert [m.name for m in result] == ["a", "b"]
