import logging
import textwrap

from s2bindgen.event_parser import (
    GameEventParser,
    merge_event_sources,
    parse_event_directory,
)

CORE = textwrap.dedent(
    """
    //=========== Core events ===========
    "CoreEvents"
    {
        "player_death"  // a player was killed
        {
            "userid"    "player_controller_and_pawn"   // victim
            "attacker"  "short"     // killer
            "headshot"  "bool"
            "local"     "1"
            "steamid"   "UINT64_T"
            "target"    "ehandle_t"
        }

        "round_start"   {}

        "round_end"
        {}
    }
    """
)

GAME = textwrap.dedent(
    """
    "GameEvents"
    {
        "player_death"
        {
            "attacker"  "long"      // should not replace the type
            "headshot"  "bool"      // shot in the head
            "weapon"    "string"    // weapon name
        }
        "round_end"     // round is over
        {
            "winner"    "byte"
            "padding"   "none"
        }
    }
    """
)


def parse(text: str):
    return GameEventParser().parse(text)


def test_parses_fields_in_declaration_order():
    events = parse(CORE)

    death = events["player_death"]
    assert death.comment == "a player was killed"
    assert list(death.fields) == ["userid", "attacker", "headshot", "steamid", "target"]
    assert death.fields["userid"].type_name == "player_controller_and_pawn"
    assert death.fields["userid"].comment == "victim"
    assert death.fields["attacker"].type_name == "short"
    assert death.fields["headshot"].comment == ""


def test_sentinel_types_are_skipped_and_aliases_applied():
    events = parse(CORE)

    death = events["player_death"]
    assert "local" not in death.fields
    assert death.fields["steamid"].type_name == "uint64"
    assert death.fields["target"].type_name == "ehandle"


def test_fieldless_events_and_wrapper_block_are_recorded():
    events = parse(CORE)

    assert events["round_start"].fields == {}
    assert events["round_end"].fields == {}
    assert "CoreEvents" in events


def test_nested_event_header_produces_its_own_record():
    events = parse(
        """
        "item_pickup"
        {
            "item"      "string"
            "item_pickup_slot"
            {
                "slot"  "byte"
            }
            "silent"    "bool"
        }
        """
    )

    assert list(events["item_pickup"].fields) == ["item", "silent"]
    assert list(events["item_pickup_slot"].fields) == ["slot"]


def test_repeated_definition_in_one_file_merges_into_first():
    events = parse(
        """
        "bomb_planted"
        {
            "site"  "short"
        }
        "bomb_planted"  // bomb is down
        {
            "site"  "string"
            "userid" "short"
        }
        """
    )

    bomb = events["bomb_planted"]
    assert bomb.comment == "bomb is down"
    assert bomb.fields["site"].type_name == "short"
    assert list(bomb.fields) == ["site", "userid"]


def test_malformed_lines_are_skipped_and_logged_at_debug(caplog):
    parser = GameEventParser()
    with caplog.at_level(logging.DEBUG, logger="s2bindgen.event_parser"):
        events = parser.parse(
            textwrap.dedent(
                """
                this is not an event
                "weapon_fire"
                {
                    "weapon"    "string"
                    ??? garbage
                }
                """
            ),
            source_name="game.gameevents",
        )

    assert list(events["weapon_fire"].fields) == ["weapon"]
    assert parser.skipped_lines == [2, 6]
    assert "Skipped 2 unrecognized line(s) in game.gameevents" in caplog.text
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_later_source_adds_fields_but_never_overwrites_types():
    merged = merge_event_sources([parse(CORE), parse(GAME)])

    death = merged["player_death"]
    assert death.fields["attacker"].type_name == "short"
    assert death.fields["attacker"].comment == "killer"
    assert death.fields["weapon"].type_name == "string"
    assert list(death.fields)[-1] == "weapon"


def test_later_source_fills_empty_comments():
    merged = merge_event_sources([parse(CORE), parse(GAME)])

    assert merged["player_death"].fields["headshot"].comment == "shot in the head"
    assert merged["round_end"].comment == "round is over"
    assert list(merged["round_end"].fields) == ["winner"]


def test_merge_leaves_parsed_sources_untouched():
    core = parse(CORE)

    merged = merge_event_sources([core, parse(GAME)])

    assert merged["player_death"] is not core["player_death"]
    assert list(core["player_death"].fields)[-1] == "target"
    assert core["player_death"].fields["headshot"].comment == ""
    assert core["round_end"].comment == ""
    assert "weapon" in merged["player_death"].fields


def test_parse_event_directory_uses_fixed_precedence(tmp_path):
    (tmp_path / "core.gameevents").write_text(CORE, encoding="utf-8")
    (tmp_path / "game.gameevents").write_text(GAME, encoding="utf-8")
    (tmp_path / "mod.gameevents").write_text(
        '"ModEvents"\n{\n    "player_death"\n    {\n        "attacker" "string"\n        "dominated" "short"\n    }\n}\n',
        encoding="utf-8",
    )

    events = parse_event_directory(tmp_path)

    death = events["player_death"]
    assert death.fields["attacker"].type_name == "short"
    assert death.fields["dominated"].type_name == "short"
    assert "ModEvents" in events


def test_parse_event_directory_skips_missing_sources(tmp_path):
    (tmp_path / "game.gameevents").write_text(GAME, encoding="utf-8")

    events = parse_event_directory(tmp_path)

    assert set(events) == {"GameEvents", "player_death", "round_end"}
