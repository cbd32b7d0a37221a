import pytest

from force_graph.diff import ChangeSummary, merge
from force_graph.models import Device, Location, LocationType, RegionLink

from factories import device


def test_merge_twice_reports_no_changes_second_time():
    existing = Device.from_dict(device('d0', 100, 200))
    incoming = {'name': 'core-1', 'online': False, 'location': {'locType': 'geo', 'latOrY': 1.5}}

    first = merge(existing, incoming)
    second = merge(existing, incoming)

    assert first.num_changes == 4
    assert second == ChangeSummary(num_changes=0, location_changed=False)


def test_grid_change_in_props_is_a_location_change():
    existing = Device.from_dict(device('d0', props={'gridX': '10', 'gridY': '20', 'name': 'a'}))

    changes = merge(existing, {'props': {'gridX': '11', 'gridY': '21'}})

    assert changes.num_changes == 2
    assert changes.location_changed
    assert existing.props == {'gridX': '11', 'gridY': '21', 'name': 'a'}


def test_label_change_is_not_a_location_change():
    existing = Device.from_dict(device('d0', 100, 200, name='old'))

    changes = merge(existing, {'name': 'new', 'props': {'name': 'new'}})

    assert changes.num_changes == 2
    assert not changes.location_changed
    assert existing.name == 'new'


def test_transient_fields_and_id_are_never_copied():
    existing = Device.from_dict(device('d0', 100, 200))
    existing.x, existing.fx = 5.0, 100

    changes = merge(existing, {'id': 'other', 'x': 99.0, 'fx': 1, 'vx': 3, 'index': 4})

    assert changes.num_changes == 0
    assert existing.id == 'd0'
    assert existing.x == 5.0
    assert existing.fx == 100
    assert existing.vx is None


def test_nested_location_is_merged_in_place():
    existing = Device.from_dict(device('d0', 100, 200))
    location = existing.location

    changes = merge(existing, {'location': {'locType': 'geo'}})

    assert existing.location is location
    assert location.loc_type is LocationType.GEO
    assert location.long_or_x == 100
    assert changes == ChangeSummary(num_changes=1, location_changed=True)


def test_missing_nested_value_is_taken_whole_as_one_location_change():
    existing = Device.from_dict(device('d0'))
    assert existing.location is None

    changes = merge(existing, {'location': {'locType': 'grid', 'longOrX': 1, 'latOrY': 2}})

    assert changes == ChangeSummary(num_changes=1, location_changed=True)
    assert isinstance(existing.location, Location)
    assert existing.location.lat_or_y == 2


def test_missing_props_entry_is_taken_whole():
    existing = Device.from_dict(device('d0'))

    changes = merge(existing, {'props': {'annotations': {'owner': 'ops'}}})

    assert changes == ChangeSummary(num_changes=1, location_changed=True)
    assert existing.props['annotations'] == {'owner': 'ops'}


def test_fields_absent_from_incoming_are_left_alone():
    existing = Device.from_dict(device('d0', 100, 200, name='keep', master='inst1'))

    merge(existing, {'online': False})

    assert existing.name == 'keep'
    assert existing.master == 'inst1'
    assert existing.location.long_or_x == 100


def test_comparison_is_strict_about_types():
    existing = Device.from_dict(device('d0', rank=1))

    assert merge(existing, {'rank': 1}).num_changes == 0
    assert merge(existing, {'rank': True}).num_changes == 1
    assert existing.rank is True


def test_int_and_float_coordinates_compare_by_value():
    existing = Device.from_dict(device('d0', 100, 200))

    changes = merge(existing, {'location': {'longOrX': 100.0, 'latOrY': 200}})

    assert changes.num_changes == 0
    assert not changes.location_changed
    assert merge(existing, {'location': {'longOrX': 100.5}}).location_changed


def test_unknown_fields_are_ignored():
    existing = Device.from_dict(device('d0'))

    changes = merge(existing, {'notAField': 3})

    assert changes.num_changes == 0
    assert not hasattr(existing, 'notAField')


def test_link_merge_does_not_touch_resolved_endpoints():
    existing = RegionLink.from_dict({'epA': 'd0', 'epB': 'd1', 'online': True})
    existing.source, existing.target = 'd0', 'd1'

    changes = merge(existing, {'online': False, 'source': 'x', 'target': 'y'})

    assert changes.num_changes == 1
    assert (existing.source, existing.target) == ('d0', 'd1')


def test_merge_into_nothing_is_refused():
    with pytest.raises(ValueError):
        merge(None, {'name': 'x'})


def test_change_summaries_accumulate():
    total = ChangeSummary()
    total += ChangeSummary(2, False)
    total += ChangeSummary(1, True)

    assert total == ChangeSummary(3, True)


def test_persisted_placement_is_merged_even_though_named_x_and_y():
    existing = Device.from_dict(device('d0', metaUi={'x': 1.0, 'y': 2.0}))

    changes = merge(existing, {'metaUi': {'x': 5.0}})

    assert changes.num_changes == 1
    assert (existing.meta_ui.x, existing.meta_ui.y) == (5.0, 2.0)
