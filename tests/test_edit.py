import math

import pytest

from voxelterra.edit import (
    EDIT_MARGIN,
    Rotator,
    dig_cube_complex_density,
    dig_cube_density,
    dig_cylinder_density,
    dig_sphere_density,
    fill_cube,
    fill_round_density,
    sphere_intersects_box,
    zone_pos,
    zones_in_reach,
)
from voxelterra.mesh import ZONE_SIZE, Box
from voxelterra.voxel_index import VoxelIndex


def _length(v):
    return math.sqrt(sum(c * c for c in v))


def test_zero_rotator_is_identity():
    r = Rotator()
    assert r.is_zero()
    assert r.rotate_vector((1.0, 2.0, 3.0)) == pytest.approx((1.0, 2.0, 3.0))


def test_full_turn_counts_as_zero():
    assert Rotator(360.0, 0.0, -360.0).is_zero()
    assert not Rotator(0.0, 45.0, 0.0).is_zero()


def test_yaw_turns_x_toward_y():
    assert Rotator(0.0, 90.0, 0.0).rotate_vector((1.0, 0.0, 0.0)) == pytest.approx(
        (0.0, 1.0, 0.0), abs=1e-9
    )


@pytest.mark.parametrize("angles", [(10.0, 20.0, 30.0), (-45.0, 120.0, 5.0), (0.0, 0.0, 77.0)])
def test_rotation_preserves_length_and_inverse_undoes_it(angles):
    r = Rotator(*angles)
    v = (3.0, -4.0, 12.0)
    rotated = r.rotate_vector(v)
    assert _length(rotated) == pytest.approx(_length(v))
    assert r.inverse().rotate_vector(rotated) == pytest.approx(v, abs=1e-9)


def test_zone_pos_scales_by_zone_size():
    assert zone_pos(VoxelIndex(0, 0, 0)) == (0.0, 0.0, 0.0)
    pos = zone_pos(VoxelIndex(2, -1, 3))
    assert pos[0] / ZONE_SIZE == 2
    assert pos[1] / ZONE_SIZE == -1


def test_sphere_box_intersection():
    lower, upper = (-1.0, -1.0, -1.0), (1.0, 1.0, 1.0)
    assert sphere_intersects_box((0.0, 0.0, 0.0), 0.1, lower, upper)
    assert not sphere_intersects_box((10.0, 0.0, 0.0), 1.0, lower, upper)
    assert sphere_intersects_box((3.0, 0.0, 0.0), 2.0, lower, upper)


def test_small_edit_reaches_only_its_zone():
    base = VoxelIndex(0, 0, 0)
    assert zones_in_reach(base, (0.0, 0.0, 0.0), 10.0) == [base]


def test_large_edit_reaches_all_neighbours():
    base = VoxelIndex(1, 1, 1)
    zones = zones_in_reach(base, zone_pos(base), ZONE_SIZE)
    assert len(zones) == 27
    assert len(set(zones)) == 27
    assert all(max(abs(a), abs(b), abs(c)) <= 1 for a, b, c in
               ((z.x - 1, z.y - 1, z.z - 1) for z in zones))


def test_edit_near_face_reaches_neighbour():
    base = VoxelIndex(0, 0, 0)
    zones = zones_in_reach(base, (ZONE_SIZE / 2 - 5.0, 0.0, 0.0), 10.0)
    assert VoxelIndex(1, 0, 0) in zones
    assert VoxelIndex(-1, 0, 0) not in zones


def test_sphere_density_half_at_surface():
    assert dig_sphere_density((0.0, 0.0, 100.0), 100.0) == pytest.approx(0.5)


def test_sphere_density_out_of_reach_and_noise():
    assert dig_sphere_density((0.0, 0.0, 100.0 + EDIT_MARGIN), 100.0) is None
    base = dig_sphere_density((0.0, 50.0, 0.0), 100.0)
    assert dig_sphere_density((0.0, 50.0, 0.0), 100.0, 0.25) == pytest.approx(base + 0.25)
    assert base < dig_sphere_density((0.0, 90.0, 0.0), 100.0)


def test_cylinder_density():
    assert dig_cylinder_density((0.0, 0.0, 60.0), 50.0, 50.0) is None
    assert dig_cylinder_density((100.0, 0.0, 0.0), 50.0, 500.0) is None
    inner = dig_cylinder_density((0.0, 0.0, 0.0), 50.0, 100.0)
    edge = dig_cylinder_density((50.0, 0.0, 10.0), 50.0, 100.0)
    assert edge == pytest.approx(0.5)
    assert 0.0 <= inner < edge


def test_cube_density():
    assert dig_cube_density((0.0, 0.0, 0.0), 100.0) == pytest.approx(0.0, abs=1e-6)
    assert dig_cube_density((100.0 + EDIT_MARGIN, 0.0, 0.0), 100.0) is not None
    assert dig_cube_density((100.0 + EDIT_MARGIN + 1.0, 0.0, 0.0), 100.0) is None
    outer = dig_cube_density((110.0, 0.0, 0.0), 100.0)
    assert dig_cube_density((0.0, 0.0, 0.0), 100.0) < outer


def test_cube_complex_density():
    box = Box((-100.0, -100.0, -100.0), (100.0, 100.0, 100.0), True)
    assert dig_cube_complex_density((0.0, 0.0, 0.0), box) == 0.0
    assert dig_cube_complex_density((151.0, 0.0, 0.0), box) is None
    value = dig_cube_complex_density((140.0, 0.0, 0.0), box)
    assert 0.0 <= value <= 1.0


def test_cube_complex_samples_noise_at_given_point():
    box = Box((-100.0, -100.0, -100.0), (100.0, 100.0, 100.0), True)
    calls = []

    def noise(point):
        calls.append(point)
        return 5.0

    at = (7.0, 8.0, 9.0)
    value = dig_cube_complex_density((90.0, 0.0, 0.0), box, noise, at)
    assert calls == [at]
    assert value == 1.0


def test_fill_cube():
    assert fill_cube((0.0, 0.0, 0.0), 50.0) == (True, True)
    assert fill_cube((60.0, 0.0, 0.0), 50.0) == (False, True)
    assert fill_cube((80.0, 0.0, 0.0), 50.0) == (False, False)


def test_fill_round_density():
    density, material = fill_round_density((0.0, 0.0, 5.0), 10.0, 0.2, 10.0)
    assert density > 0.2
    assert material
    assert fill_round_density((0.0, 0.0, 15.0), 10.0, 0.2, 10.0) == (None, True)
    assert fill_round_density((0.0, 0.0, 40.0), 10.0, 0.2, 10.0) == (None, False)
    assert fill_round_density((0.0, 0.0, 0.0), 10.0, 0.2, 10.0)[0] == math.inf