"""Selection identity, modes and pruning."""

import pytest

from gridsync import DataTable
from gridsync.grid.selection import SelectionTracker
from gridsync.shared.core.configuration import SelectionConfig

from conftest import EventRecorder, FakeServer, ScriptedTransport


class TestSelectionTracker:
    def test_single_select_replaces(self):
        tracker = SelectionTracker(SelectionConfig())
        tracker.select("a")
        tracker.select("b")
        assert tracker.ordered_ids() == ["b"]

    def test_multi_select_keeps_insertion_order(self):
        tracker = SelectionTracker(SelectionConfig(multi_select=True))
        for row_id in (3, 1, 2):
            tracker.select(row_id)
        assert tracker.ordered_ids() == [3, 1, 2]
        assert tracker.select(1) is False
        assert tracker.select(1, False) is True
        assert 1 not in tracker
        assert len(tracker) == 2

    def test_select_many_requires_multi(self):
        with pytest.raises(ValueError):
            SelectionTracker().select_many([1, 2])

    def test_prune(self):
        tracker = SelectionTracker(SelectionConfig(multi_select=True))
        tracker.select_many([1, 2, 3])
        assert tracker.prune([2, 9]) is True
        assert tracker.ordered_ids() == [2]
        assert tracker.prune([2]) is False

    def test_shift_after_removal(self):
        tracker = SelectionTracker(SelectionConfig(multi_select=True))
        tracker.select_many([0, 4, 5, 9, "key"])
        tracker.shift_after_removal(4)
        assert tracker.ordered_ids() == [0, 4, 8, "key"]

    def test_selected_rows_follow_universe_order(self):
        tracker = SelectionTracker(SelectionConfig(multi_select=True))
        tracker.select_many(["c", "a"])
        universe = {"a": {"n": 1}, "b": {"n": 2}, "c": {"n": 3}}
        assert tracker.selected_rows(universe) == [{"n": 1}, {"n": 3}]


class TestLocalSelection:
    def test_selection_survives_sorting(self, local_config, people):
        table = DataTable(local_config)
        table.select(0)
        table.set_sort("name", "desc")
        assert table.get_selected() == [people[0]]
        assert people[0] not in table.rows

    def test_id_field_identity(self, local_config, people):
        local_config["selection"]["id_field"] = "id"
        table = DataTable(local_config)
        table.select(5)
        assert table.get_selected() == [people[4]]

        table.remove_row(4)
        assert table.get_selected() == []
        assert table.selection.ordered_ids() == []

    def test_removing_row_without_id_value_deselects_it(self, local_config, people):
        anonymous = {k: v for k, v in people[0].items() if k != "id"}
        local_config["data"] = [anonymous] + people[1:4]
        local_config["selection"]["id_field"] = "id"
        table = DataTable(local_config)
        table.select(0)
        assert table.get_selected() == [anonymous]

        table.remove_row(0)

        assert table.selection.ordered_ids() == []
        assert table.get_selected() == []

    def test_table_and_store_share_one_tracker(self, local_config, people):
        table = DataTable(local_config)
        assert table.store.selection is table.selection

        table.select(4)

        assert table.snapshot().selection == (4,)
        assert table.export_rows(selected_only=True) == [people[4]]

    def test_single_mode_rejects_select_all(self, local_config):
        local_config["selection"] = {"multi_select": False}
        table = DataTable(local_config)
        recorder = EventRecorder(table, "warning")
        table.select(1)
        table.select(2)

        assert table.select_all() is False
        assert table.selection.ordered_ids() == [2]
        assert recorder["warning"][0]["field"] == "selection"

    def test_select_all_covers_filtered_collection(self, local_config):
        table = DataTable(local_config)
        table.set_search("Oslo")
        table.select_all()

        assert len(table.get_selected()) == 12
        assert all(row["city"] == "Oslo" for row in table.get_selected())

        table.set_search("")
        assert len(table.get_selected()) == 12

    def test_select_all_false_clears(self, local_config):
        table = DataTable(local_config)
        table.select_all()
        assert table.select_all(False) is True
        assert table.get_selected() == []

    def test_selection_state_change_event(self, local_config):
        table = DataTable(local_config)
        recorder = EventRecorder(table, "stateChange")
        table.select(3)
        table.select(7)
        table.clear_selection()

        assert recorder["stateChange"] == [
            {"field": "selection", "oldValue": [], "newValue": [3]},
            {"field": "selection", "oldValue": [3], "newValue": [3, 7]},
            {"field": "selection", "oldValue": [3, 7], "newValue": []},
        ]
        assert table.state.selection == frozenset()

    def test_filtered_out_rows_are_pruned_when_not_retained(self, local_config):
        local_config["selection"]["retain_offpage"] = False
        table = DataTable(local_config)
        table.select(0)
        table.select(1)

        table.set_search("Oslo")

        assert table.selection.ordered_ids() == [1]
        assert table.state.selection == frozenset({1})


class TestRemoteSelection:
    @pytest.mark.asyncio
    async def test_selection_is_retained_across_pages(self, remote_config, people):
        remote_config["selection"] = {"multi_select": True, "id_field": "id"}
        table = DataTable(remote_config, transport=ScriptedTransport(FakeServer(people)))
        await table.start()

        table.select(3)
        table.set_page(2)
        await table.wait_idle()
        assert table.get_selected() == []
        assert 3 in table.selection

        table.set_page(1)
        await table.wait_idle()
        assert table.get_selected() == [people[2]]

    @pytest.mark.asyncio
    async def test_offpage_selection_dropped_when_not_retained(self, remote_config, people):
        remote_config["selection"] = {"multi_select": True, "id_field": "id", "retain_offpage": False}
        table = DataTable(remote_config, transport=ScriptedTransport(FakeServer(people)))
        await table.start()

        table.select(3)
        table.set_page(2)
        await table.wait_idle()

        assert len(table.selection) == 0

    @pytest.mark.asyncio
    async def test_select_all_selects_visible_page(self, remote_config, people):
        remote_config["selection"] = {"multi_select": True, "id_field": "id"}
        table = DataTable(remote_config, transport=ScriptedTransport(FakeServer(people)))
        await table.start()

        table.select_all()

        assert table.get_selected() == people[:10]
