import pytest

from pizzastock.application.data_export import (
    from_csv,
    from_json,
    ingredient_rows,
    parse_requirements,
    parse_upload,
    render,
    to_csv,
    to_json,
)


def test_to_csv_blanks_none_and_keeps_header_order():
    rows = [{"name": "Massa", "capacity": None}, {"name": "Molho", "capacity": 4}]
    assert to_csv(rows) == "name,capacity\nMassa,\nMolho,4\n"
    assert to_csv([]) == ""


def test_to_json_keeps_accents():
    assert '"Orégano"' in to_json([{"name": "Orégano"}])


def test_ingredient_rows_include_status(ingredient_repo):
    rows = {r["name"]: r for r in ingredient_rows(ingredient_repo.all())}
    assert rows["Calabresa"]["status"] == "critical"
    assert rows["Massa"]["status"] == "ok"


def test_render_rejects_unknown_format():
    with pytest.raises(ValueError):
        render([{"a": 1}], "xlsx")


def test_from_csv_trims_cells_and_ignores_extra_columns():
    text = "name , unit,min_stock\n Azeitona , g , 50 \nBacon,g,20,extra\n"
    assert from_csv(text) == [
        {"name": "Azeitona", "unit": "g", "min_stock": "50"},
        {"name": "Bacon", "unit": "g", "min_stock": "20"},
    ]


def test_from_csv_and_json_reject_bad_uploads():
    with pytest.raises(ValueError):
        from_csv("")
    with pytest.raises(ValueError):
        from_json('{"name": "Azeitona"}')
    with pytest.raises(ValueError):
        from_json("[1, 2]")
    with pytest.raises(ValueError):
        from_json("not json")


def test_parse_upload_dispatches_on_format():
    assert parse_upload('[{"name": "Azeitona"}]', "json") == [{"name": "Azeitona"}]
    assert parse_upload("name\nAzeitona", "csv") == [{"name": "Azeitona"}]
    with pytest.raises(ValueError):
        parse_upload("name\nAzeitona", "xml")


def test_parse_requirements_reads_exported_column():
    assert parse_requirements("Massa=250g; Molho de Tomate=50ml;Mussarela=100,5 g") == [
        ("Massa", 250.0),
        ("Molho de Tomate", 50.0),
        ("Mussarela", 100.5),
    ]
    assert parse_requirements(None) == []
    assert parse_requirements("") == []
    with pytest.raises(ValueError):
        parse_requirements("Massa=muito")
