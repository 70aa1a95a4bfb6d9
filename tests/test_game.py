"""
Tests for the territory conquest game core.

Tests cover:
- Building catalog
- Grid adjacency and ownership queries
- Action resolution (attack, defend, build, move)
- Wall rules
- Growth computation and growth clock
- Random events
- Interactive session flow
- Renderer and snapshot
- Configuration
"""

import sys
import os
import random

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from conquest.buildings import (
    Building, BuildingKind, BUILDING_CATALOG, BUILDING_KINDS, Terrain,
    MIN_BUILDING_COST, building_cost,
)
from conquest.grid import Grid, Player, Territory
from conquest.actions import Attack, Build, Defend, Move, ActionType, describe
from conquest.config import RulesConfig, TrainingConfig
from conquest.events import EventKind, EventSchedule, EVENT_SPECS
from conquest.rules import GrowthClock, Resolver
from conquest.renderer import GameRenderer
from conquest.session import GameSession, HUMAN_ID
from conquest_ai.player import NeuralPlayer


def own(grid, x, y, player_id, troops):
    cell = grid.get(x, y)
    cell.owner = player_id
    cell.troops = troops
    return cell


def make_player(pid="p1", gold=500, human=False):
    return Player(id=pid, name=pid, gold=gold, is_human=human)


class TestBuildings:
    def test_catalog_complete(self):
        for kind in BuildingKind:
            assert kind in BUILDING_CATALOG

    def test_costs(self):
        assert building_cost(BuildingKind.FORT) == 100
        assert building_cost(BuildingKind.FARM) == 150
        assert building_cost(BuildingKind.TOWER) == 200
        assert building_cost(BuildingKind.BARRACKS) == 120
        assert building_cost(BuildingKind.WALL) == 80
        assert building_cost(BuildingKind.MINE) == 150
        assert building_cost(BuildingKind.MARKET) == 200
        assert MIN_BUILDING_COST == 80

    def test_slot_order(self):
        assert BUILDING_KINDS[0] == BuildingKind.FORT
        assert BUILDING_KINDS[4] == BuildingKind.WALL
        assert BUILDING_KINDS[6] == BuildingKind.MARKET

    def test_building_stats(self):
        b = Building(BuildingKind.MARKET)
        assert b.level == 1
        assert b.stats.gold_bonus == 10


class TestGrid:
    def test_row_major_order(self):
        grid = Grid(4, 3)
        assert len(grid) == 12
        assert grid.cells[5].position == (1, 1)
        assert grid.index_of(1, 1) == 5

    def test_get_out_of_bounds(self):
        grid = Grid(4, 3)
        assert grid.get(4, 0) is None
        assert grid.get(-1, 0) is None
        assert grid.get(3, 2) is not None

    def test_find_adjacent_euclidean(self):
        grid = Grid(7, 7)
        center = grid.get(3, 3)
        adjacent = grid.find_adjacent(center)
        positions = {t.position for t in adjacent}
        assert (3, 3) not in positions
        assert (5, 3) in positions        # distance 2
        assert (4, 4) in positions        # distance ~1.41
        assert (5, 5) not in positions    # distance ~2.83
        assert len(adjacent) == 12

    def test_find_adjacent_skips_walls(self):
        grid = Grid(5, 5)
        grid.get(3, 2).wall = True
        positions = {t.position for t in grid.find_adjacent(grid.get(2, 2))}
        assert (3, 2) not in positions

    def test_find_nearby_empty(self):
        grid = Grid(5, 5)
        own(grid, 1, 2, "p2", 3)
        empty = {t.position for t in grid.find_nearby_empty(grid.get(2, 2))}
        assert (1, 2) not in empty
        assert (3, 2) in empty

    def test_tower_extends_range(self):
        grid = Grid(8, 1)
        source = grid.get(0, 0)
        target = grid.get(3, 0)
        assert not grid.in_range(source, target)
        source.building = Building(BuildingKind.TOWER, level=1)
        assert grid.in_range(source, target)

    def test_walls_not_owned(self):
        grid = Grid(3, 3)
        own(grid, 0, 0, "p1", 5)
        wall = own(grid, 1, 0, "p1", 0)
        wall.wall = True
        assert [t.position for t in grid.owned_by("p1")] == [(0, 0)]
        assert grid.territory_counts() == {"p1": 1}

    def test_border_territories(self):
        grid = Grid(6, 1)
        own(grid, 0, 0, "p1", 5)
        own(grid, 1, 0, "p1", 5)
        own(grid, 3, 0, "p2", 5)
        hostile = {t.position for t in grid.border_territories("p1")}
        assert hostile == {(1, 0)}
        any_border = {t.position for t in
                      grid.border_territories("p1", hostile_only=False)}
        assert any_border == {(0, 0), (1, 0)}

    def test_claim_start(self):
        grid = Grid(9, 9)
        grid.get(4, 5).terrain = Terrain.WATER
        player = make_player()
        claimed = grid.claim_start(player, 4, 4, radius=2, troops=10)
        # 13 cells within radius 2, minus the water cell
        assert claimed == 12
        assert grid.get(4, 5).owner is None
        assert grid.get(4, 4).has_building(BuildingKind.BARRACKS)
        assert grid.get(4, 3).troops == 10
        assert player.territory == 12

    def test_from_cells(self):
        cells = [Territory(x=x, y=y) for x in range(3) for y in range(2)]
        grid = Grid.from_cells(3, 2, cells)
        assert grid.get(2, 1).position == (2, 1)

    def test_from_cells_rejects_duplicates(self):
        cells = [Territory(x=0, y=0), Territory(x=0, y=0)]
        with pytest.raises(ValueError):
            Grid.from_cells(2, 1, cells)

    def test_create_random(self):
        grid = Grid.create_random(20, 15, rng=random.Random(3))
        assert len(grid) == 300
        for t in grid:
            if t.is_water:
                assert t.troops == 0
            else:
                assert 1 <= t.troops <= 5
            assert t.owner is None


class TestActions:
    def test_action_types(self):
        assert Attack((0, 0), (1, 0)).action_type == ActionType.ATTACK
        assert Defend((0, 0)).action_type == ActionType.DEFEND
        assert Build((0, 0), BuildingKind.FORT).action_type == ActionType.BUILD
        assert Move((0, 0), (1, 0)).action_type == ActionType.MOVE

    def test_describe(self):
        assert describe(Build((2, 3), BuildingKind.MINE)) == "Build Mine at (2,3)"
        with pytest.raises(TypeError):
            describe("attack")


class TestAttack:
    def setup_method(self):
        self.grid = Grid(5, 5)
        self.resolver = Resolver()
        self.attacker = make_player("p1")
        self.source = own(self.grid, 0, 0, "p1", 10)
        self.target = own(self.grid, 1, 0, "p2", 3)

    def test_successful_capture(self):
        ok = self.resolver.apply(self.grid, self.attacker, Attack((0, 0), (1, 0)))
        assert ok
        assert self.target.owner == "p1"
        assert self.target.troops == 2
        assert self.source.troops == 5

    def test_fort_repels_attack(self):
        self.target.building = Building(BuildingKind.FORT, level=1)
        ok = self.resolver.apply(self.grid, self.attacker, Attack((0, 0), (1, 0)))
        assert ok
        assert self.target.owner == "p2"
        assert self.target.troops == 1
        assert self.source.troops == 5

    def test_capture_destroys_building(self):
        self.target.building = Building(BuildingKind.MINE)
        self.resolver.apply(self.grid, self.attacker, Attack((0, 0), (1, 0)))
        assert self.target.owner == "p1"
        assert self.target.building is None

    def test_failed_attack_losses_scale_with_fort(self):
        self.source.troops = 30
        self.target.troops = 4
        self.target.building = Building(BuildingKind.FORT, level=3)
        self.resolver.apply(self.grid, self.attacker, Attack((0, 0), (1, 0)))
        assert self.target.owner == "p2"
        assert self.target.troops == 1  # 4 - 15 // 4
        assert self.source.troops == 15

    def test_out_of_range_rejected(self):
        far = own(self.grid, 3, 0, "p2", 1)
        ok = self.resolver.apply(self.grid, self.attacker, Attack((0, 0), (3, 0)))
        assert not ok
        assert far.owner == "p2"
        assert self.source.troops == 10

    def test_source_not_owned_rejected(self):
        other = make_player("p3")
        assert not self.resolver.apply(self.grid, other, Attack((0, 0), (1, 0)))

    def test_own_target_rejected(self):
        own(self.grid, 0, 1, "p1", 1)
        assert not self.resolver.apply(self.grid, self.attacker,
                                       Attack((0, 0), (0, 1)))

    def test_zero_force_rejected(self):
        self.source.troops = 1
        assert not self.resolver.apply(self.grid, self.attacker,
                                       Attack((0, 0), (1, 0)))
        assert self.source.troops == 1

    def test_unknown_coordinates_rejected(self):
        assert not self.resolver.apply(self.grid, self.attacker,
                                       Attack((0, 0), (99, 99)))

    def test_attack_on_wall_rejected(self):
        self.target.wall = True
        self.target.troops = 0
        assert not self.resolver.apply(self.grid, self.attacker,
                                       Attack((0, 0), (1, 0)))
        assert self.target.wall

    def test_military_parade_boosts_human_forts(self):
        events = EventSchedule()
        events.active = EventKind.MILITARY_PARADE
        resolver = Resolver(events=events, human_ids=["p2"])
        self.target.building = Building(BuildingKind.FORT, level=1)
        assert resolver.effective_defense(self.target) == pytest.approx(9.0)
        assert Resolver().effective_defense(self.target) == 6

        # Force 8 beats 6 but not 9; losses 8 // 2 clamp at zero
        self.source.troops = 16
        resolver.apply(self.grid, self.attacker, Attack((0, 0), (1, 0)))
        assert self.target.owner == "p2"
        assert self.target.troops == 0
        assert self.source.troops == 8

    def test_unknown_action_type(self):
        with pytest.raises(TypeError):
            self.resolver.apply(self.grid, self.attacker, "attack")


class TestDefendBuildMove:
    def setup_method(self):
        self.grid = Grid(5, 5)
        self.resolver = Resolver()
        self.player = make_player("p1", gold=500)
        own(self.grid, 0, 0, "p1", 10)
        own(self.grid, 1, 0, "p1", 2)

    def test_defend_adds_troops(self):
        assert self.resolver.apply(self.grid, self.player, Defend((1, 0)))
        assert self.grid.get(1, 0).troops == 7

    def test_defend_unowned_rejected(self):
        assert not self.resolver.apply(self.grid, self.player, Defend((3, 3)))

    def test_build_deducts_gold(self):
        ok = self.resolver.apply(self.grid, self.player,
                                 Build((0, 0), BuildingKind.FORT))
        assert ok
        assert self.grid.get(0, 0).has_building(BuildingKind.FORT)
        assert self.player.gold == 400

    def test_build_on_occupied_rejected_without_charge(self):
        self.resolver.apply(self.grid, self.player, Build((0, 0), BuildingKind.FORT))
        ok = self.resolver.apply(self.grid, self.player,
                                 Build((0, 0), BuildingKind.FARM))
        assert not ok
        assert self.player.gold == 400

    def test_build_unaffordable_rejected(self):
        self.player.gold = 50
        assert not self.resolver.apply(self.grid, self.player,
                                       Build((0, 0), BuildingKind.FORT))
        assert self.grid.get(0, 0).building is None

    def test_build_on_foreign_rejected(self):
        own(self.grid, 2, 2, "p2", 5)
        assert not self.resolver.apply(self.grid, self.player,
                                       Build((2, 2), BuildingKind.FARM))
        assert self.player.gold == 500

    def test_move_transfers_eighty_percent(self):
        assert self.resolver.apply(self.grid, self.player, Move((0, 0), (1, 0)))
        assert self.grid.get(0, 0).troops == 2
        assert self.grid.get(1, 0).troops == 10

    def test_move_to_unowned_rejected(self):
        assert not self.resolver.apply(self.grid, self.player,
                                       Move((0, 0), (0, 1)))
        assert self.grid.get(0, 0).troops == 10


class TestWalls:
    def setup_method(self):
        self.grid = Grid(5, 5)
        self.resolver = Resolver()
        self.player = make_player("p1", gold=500)
        own(self.grid, 0, 0, "p1", 10)

    def test_wall_on_empty_cell(self):
        cell = self.grid.get(2, 2)
        cell.troops = 4
        ok = self.resolver.apply(self.grid, self.player,
                                 Build((2, 2), BuildingKind.WALL))
        assert ok
        assert cell.wall
        assert cell.troops == 0
        assert cell.building is None
        assert cell.owner == "p1"
        assert self.player.gold == 420
        # Cosmetic owner only
        assert cell not in self.grid.owned_by("p1")

    def test_wall_on_owned_cell_rejected(self):
        assert not self.resolver.apply(self.grid, self.player,
                                       Build((0, 0), BuildingKind.WALL))
        assert self.player.gold == 500

    def test_wall_on_water_rejected(self):
        self.grid.get(3, 3).terrain = Terrain.WATER
        assert not self.resolver.apply(self.grid, self.player,
                                       Build((3, 3), BuildingKind.WALL))

    def test_walls_never_hold_buildings_or_troops(self):
        self.resolver.apply(self.grid, self.player, Build((1, 1), BuildingKind.WALL))
        wall = self.grid.get(1, 1)
        actions = [
            Build((1, 1), BuildingKind.FORT),
            Defend((1, 1)),
            Move((0, 0), (1, 1)),
            Attack((0, 0), (1, 1)),
        ]
        for action in actions:
            assert not self.resolver.apply(self.grid, self.player, action)
        for player_id in ("p1", "p2"):
            self.resolver.apply_growth(self.grid, [make_player(player_id)])
        assert wall.wall
        assert wall.troops == 0
        assert wall.building is None


class TestGrowth:
    def setup_method(self):
        self.grid = Grid(5, 1)
        self.player = make_player("p1", gold=0)
        self.player.troops = 0
        for x in range(5):
            own(self.grid, x, 0, "p1", 1)
        self.grid.get(0, 0).building = Building(BuildingKind.BARRACKS)
        self.grid.get(1, 0).building = Building(BuildingKind.FARM)
        self.grid.get(2, 0).building = Building(BuildingKind.MINE)

    def test_compute_growth(self):
        report = Resolver().compute_growth(self.grid, self.player)
        assert report.territories == 5
        # floor(3 * (1 + 1 * 0.01 * 5))
        assert report.troop_growth == 3
        # floor(10 + 0.5 * 5 + 5)
        assert report.gold_growth == 17

    def test_apply_growth_updates_player_and_barracks(self):
        Resolver().apply_growth(self.grid, [self.player])
        assert self.player.territory == 5
        assert self.player.troops == 3
        assert self.player.gold == 17
        assert self.grid.get(0, 0).troops == 3   # 1 + (1 + level)
        assert self.grid.get(1, 0).troops == 1

    def test_resource_boom_doubles_troops(self):
        events = EventSchedule()
        events.active = EventKind.RESOURCE_BOOM
        report = Resolver(events=events).compute_growth(self.grid, self.player)
        assert report.troop_growth == 6

    def test_supply_shortage_only_hits_ai(self):
        events = EventSchedule()
        events.active = EventKind.SUPPLY_SHORTAGE
        resolver = Resolver(events=events)
        assert resolver.compute_growth(self.grid, self.player).troop_growth == 1
        self.player.is_human = True
        assert resolver.compute_growth(self.grid, self.player).troop_growth == 3

    def test_no_barracks_no_troops(self):
        self.grid.get(0, 0).building = None
        report = Resolver().compute_growth(self.grid, self.player)
        assert report.troop_growth == 0
        assert report.gold_growth == 17


class TestGrowthClock:
    def test_at_most_once_per_interval(self):
        clock = GrowthClock(3.0)
        ticks = [i / 10 for i in range(1, 61)]
        fired = [t for t in ticks if clock.due(t)]
        assert len(fired) == 2

    def test_restarts_from_fire_time(self):
        clock = GrowthClock(3.0)
        assert not clock.due(2.9)
        assert clock.due(3.5)
        assert not clock.due(6.4)
        assert clock.due(6.5)


class TestEvents:
    def test_no_event_before_first_day(self):
        schedule = EventSchedule(first_event_day=5, rng=random.Random(0))
        for day in range(1, 5):
            assert schedule.on_new_day(day) is None
        assert schedule.active is None

    def test_event_fires_and_reschedules(self):
        schedule = EventSchedule(first_event_day=5, rng=random.Random(0))
        message = schedule.on_new_day(5)
        assert message.startswith("Day 5:")
        assert schedule.active is not None
        assert 8 <= schedule.next_event_day <= 12

    def test_event_expires(self):
        schedule = EventSchedule(first_event_day=5, rng=random.Random(1))
        schedule.on_new_day(5)
        kind = schedule.active
        schedule.next_event_day = 100
        expires = 5 + EVENT_SPECS[kind].duration_days
        schedule.on_new_day(expires - 1)
        assert schedule.is_active(kind)
        schedule.on_new_day(expires)
        assert schedule.active is None


class RecordingNeuralPlayer:
    """Stands in for a trained model; passes every turn."""

    def __init__(self):
        self.initialized = False
        self.calls = []

    def initialize(self):
        self.initialized = True
        return False

    def decide(self, grid, player, day):
        self.calls.append(player.id)
        return None


class TestSession:
    def make_session(self, seed=1):
        rng = random.Random(seed)
        grid = Grid.create_random(20, 15, rng=rng)
        return GameSession(grid=grid, rng=rng)

    def make_neural_session(self, neural_player, seed=1):
        rng = random.Random(seed)
        grid = Grid.create_random(20, 15, rng=rng)
        return GameSession(grid=grid, rng=rng, neural_player=neural_player)

    def land_cell(self, session):
        for t in session.grid:
            if not t.is_water and t.owner is None and not t.wall:
                return t
        raise AssertionError("no free land")

    def test_ai_players_settled(self):
        session = self.make_session()
        assert len(session.ai_players) == 3
        for player in session.ai_players:
            assert player.personality is not None
            assert player.gold == 500
            assert session.grid.owned_by(player.id)

    def test_neural_player_takes_first_seat(self):
        neural = RecordingNeuralPlayer()
        session = self.make_neural_session(neural)
        seat = session.players["ai1"]
        assert neural.initialized
        assert session.neural_id == "ai1"
        assert seat.name == "Neural AI"
        assert seat.personality is None
        assert session.players["ai2"].personality is not None

        cell = self.land_cell(session)
        session.click(cell.x, cell.y)
        session.run_ai_turns()
        assert neural.calls == ["ai1"]

    def test_session_with_fresh_neural_model(self):
        neural = NeuralPlayer(TrainingConfig(hidden_sizes=(8,), seed=0))
        session = self.make_neural_session(neural)
        assert not neural.loaded
        cell = self.land_cell(session)
        session.click(cell.x, cell.y)
        for _ in range(5):
            session.advance(3.0)
        for t in session.grid:
            assert t.troops >= 0

    def test_first_click_claims(self):
        session = self.make_session()
        cell = self.land_cell(session)
        assert session.click(cell.x, cell.y)
        assert session.has_claimed
        assert cell.owner == HUMAN_ID
        assert cell.has_building(BuildingKind.BARRACKS)

    def test_no_growth_before_claim(self):
        session = self.make_session()
        session.advance(10.0)
        assert session.human.gold == 500

    def test_growth_after_claim(self):
        session = self.make_session()
        cell = self.land_cell(session)
        session.click(cell.x, cell.y)
        troops = cell.troops
        session.advance(3.0)
        assert session.human.gold > 500
        assert cell.troops > troops or cell.owner != HUMAN_ID

    def test_day_advances(self):
        session = self.make_session()
        session.advance(30.0)
        assert session.day == 2
        session.advance(60.0)
        assert session.day == 4

    def test_select_then_move(self):
        session = self.make_session()
        cell = self.land_cell(session)
        session.click(cell.x, cell.y)
        neighbour = next(t for t in session.grid.find_adjacent(cell)
                         if t.is_owned_by(HUMAN_ID))
        cell.troops = 20
        neighbour_troops = neighbour.troops
        assert not session.click(cell.x, cell.y)
        assert session.selected == cell.position
        assert session.click(neighbour.x, neighbour.y)
        assert session.selected is None
        assert cell.troops == 4
        assert neighbour.troops == neighbour_troops + 16

    def test_build_mode(self):
        session = self.make_session()
        cell = self.land_cell(session)
        session.click(cell.x, cell.y)
        neighbour = next(t for t in session.grid.find_adjacent(cell)
                         if t.is_owned_by(HUMAN_ID) and t.building is None)
        session.enter_build_mode(BuildingKind.FARM)
        assert session.click(neighbour.x, neighbour.y)
        assert neighbour.has_building(BuildingKind.FARM)
        assert session.human.gold == 350
        assert session.build_mode is None

    def test_game_over_by_elimination(self):
        rng = random.Random(0)
        session = GameSession(grid=Grid(8, 8), num_ai=1, rng=rng)
        session.click(6, 6)
        assert not session.check_game_over()
        for t in session.grid:
            if t.owner == "ai1":
                t.owner = None
        assert session.check_game_over()
        assert session.winner == HUMAN_ID

    def test_snapshot(self):
        session = self.make_session()
        cells = session.snapshot()
        assert len(cells) == 300
        assert set(cells[0]) == {"x", "y", "terrain", "owner", "color", "troops",
                                 "building", "level", "wall", "selected"}
        cells[0]["troops"] = 999
        assert session.grid.cells[0].troops != 999


class TestRenderer:
    def test_render(self):
        session = GameSession(grid=Grid(10, 6), num_ai=2, rng=random.Random(2))
        text = GameRenderer.render(session.grid, session.players, day=1)
        assert "Legend" in text
        assert "K" in text  # starting barracks

    def test_render_compact(self):
        session = GameSession(grid=Grid(10, 6), num_ai=2, rng=random.Random(2))
        line = GameRenderer.render_compact(session.grid, session.players, 3)
        assert line.startswith("D003")
        assert "ai1" in line


class TestConfig:
    def test_rules_defaults(self):
        rules = RulesConfig()
        assert rules.attack_fraction == 0.5
        assert rules.move_fraction == 0.8
        assert rules.growth_interval == 3.0

    def test_rules_from_env(self, monkeypatch):
        monkeypatch.setenv("CONQUEST_ATTACK_FRACTION", "0.7")
        assert RulesConfig.from_env().attack_fraction == 0.7

    def test_training_config_save_load(self, tmp_path):
        config = TrainingConfig(max_days=50, hidden_sizes=(32, 16))
        path = str(tmp_path / "training.json")
        config.save(path)
        loaded = TrainingConfig.load(path)
        assert loaded.max_days == 50
        assert loaded.hidden_sizes == (32, 16)
