from app.levels.curve import (
    MAX_LEVEL,
    xp_for_level,
    total_xp_for_level,
    level_from_xp,
    progress_summary,
    curve_table,
)


def test_xp_for_level_known_values():
    assert xp_for_level(1) == 0
    assert xp_for_level(0) == 0
    assert xp_for_level(2) == 100
    # 100 * 2^1.5 = 282.84...
    assert xp_for_level(3) == 283
    # 100 * 3^1.5 = 519.61...
    assert xp_for_level(4) == 520
    # 100 * 4^1.5 = 800 exactly
    assert xp_for_level(5) == 800


def test_total_xp_for_level_is_running_sum():
    assert total_xp_for_level(1) == 0
    assert total_xp_for_level(-3) == 0
    assert total_xp_for_level(2) == 100
    assert total_xp_for_level(3) == 383
    assert total_xp_for_level(4) == 903
    for level in range(2, MAX_LEVEL + 5):
        assert total_xp_for_level(level) == sum(xp_for_level(i) for i in range(2, level + 1))


def test_total_xp_for_level_strictly_increasing():
    prev = total_xp_for_level(1)
    for level in range(2, MAX_LEVEL + 3):
        current = total_xp_for_level(level)
        assert current > prev
        prev = current


def test_level_from_xp_boundaries():
    assert level_from_xp(0) == 1
    assert level_from_xp(99) == 1
    # Exact threshold belongs to the higher level
    assert level_from_xp(total_xp_for_level(2)) == 2
    assert level_from_xp(total_xp_for_level(3) - 1) == 2
    assert level_from_xp(total_xp_for_level(3)) == 3
    assert level_from_xp(150) == 2


def test_level_from_xp_rejects_junk_input():
    assert level_from_xp(-50) == 1
    assert level_from_xp(float("nan")) == 1
    assert level_from_xp(float("inf")) == 1
    assert level_from_xp(None) == 1
    assert level_from_xp("500") == 1


def test_level_from_xp_saturates_at_max():
    assert level_from_xp(total_xp_for_level(MAX_LEVEL)) == MAX_LEVEL
    assert level_from_xp(total_xp_for_level(MAX_LEVEL) + 1_000_000) == MAX_LEVEL
    assert level_from_xp(10**15) == MAX_LEVEL


def test_level_from_xp_brackets_total():
    samples = list(range(0, 5000, 37)) + [total_xp_for_level(l) + d for l in range(1, MAX_LEVEL + 1) for d in (-1, 0, 1)]
    for xp in samples:
        if xp < 0:
            continue
        level = level_from_xp(xp)
        assert 1 <= level <= MAX_LEVEL
        assert total_xp_for_level(level) <= xp
        assert level == MAX_LEVEL or xp < total_xp_for_level(level + 1)


def test_level_from_xp_monotonic():
    prev = level_from_xp(0)
    for xp in range(0, total_xp_for_level(12), 13):
        level = level_from_xp(xp)
        assert level >= prev
        prev = level


def test_progress_summary_mid_level():
    summary = progress_summary(150)
    assert summary["level"] == 2
    assert summary["currentLevelXp"] == 100
    assert summary["nextLevelXp"] == 383
    assert summary["xpIntoLevel"] == 50
    assert summary["xpForNextLevel"] == 283
    assert summary["isMaxLevel"] is False
    assert 0 < summary["progressPercent"] < 100


def test_progress_summary_at_max_level():
    summary = progress_summary(total_xp_for_level(MAX_LEVEL) + 10)
    assert summary["level"] == MAX_LEVEL
    assert summary["isMaxLevel"] is True
    assert summary["xpForNextLevel"] == 0
    assert summary["progressPercent"] == 100.0


def test_curve_table_matches_functions():
    table = curve_table()
    assert table["maxLevel"] == MAX_LEVEL
    assert len(table["levels"]) == MAX_LEVEL
    assert table["levels"][0] == {"level": 1, "xpForLevel": 0, "totalXp": 0}
    assert table["levels"][2] == {"level": 3, "xpForLevel": 283, "totalXp": 383}
