import operator

from hashtab.debug import dump_bucket, dump_table
from hashtab.table import Table, init_table


def test_dump_table(capsys):
    t = init_table(1, 1.0, operator.eq, lambda key, maxhash: 0)
    assert isinstance(t, Table)
    t.set("a", 1)
    t.set("b", 2)

    dump_table(t, "t")
    assert capsys.readouterr().out == (
        "== t (2 entries, 2 buckets) ==\n"
        "0000 ['a': 1] -> ['b': 2]\n"
        "0001 [ ]\n"
    )


def test_dump_bucket_with_vacated_head(capsys):
    t = init_table(1, 1.0, operator.eq, lambda key, maxhash: 0)
    assert isinstance(t, Table)
    t.set("a", 1)
    t.set("b", 2)
    t.unset("a")

    assert dump_bucket(t, 0) == 1
    assert capsys.readouterr().out == "0000 [ ] -> ['b': 2]\n"
