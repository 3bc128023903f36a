import io

from tinyunix.wc import Counts, count, main


def test_empty_input():
    assert count(io.BytesIO(b"")) == Counts(0, 0, 0)


def test_simple_text():
    assert count(io.BytesIO(b"hello world\n")).words == 2


def test_chars_and_lines_invariants():
    data = b"one two\n\nthree\tfour five\r\nsix"
    counts = count(io.BytesIO(data))
    assert counts.chars == len(data)
    assert counts.lines == data.count(b"\n")


def test_all_separators_split_words():
    reference = count(io.BytesIO(b"a b")).words
    for sep in (b"\t", b"\r", b"\n", b"\v", b"\x00"):
        assert count(io.BytesIO(b"a" + sep + b"b")).words == reference


def test_word_spanning_chunks_counts_once():
    data = b"x" * 2000
    counts = count(io.BytesIO(data))
    assert counts.words == count(io.BytesIO(b"x")).words
    assert counts.chars == len(data)


def test_text_stream_matches_binary_for_ascii():
    data = "alpha beta\ngamma\n"
    assert count(io.StringIO(data)) == count(io.BytesIO(data.encode()))


def test_main_prints_counts_for_file(tmp_path, capsys):
    data = b"a b\nc\n"
    path = tmp_path / "f.txt"
    path.write_bytes(data)
    assert main([str(path)]) == 0
    expected = count(io.BytesIO(data))
    assert capsys.readouterr().out == (
        f"{expected.lines} {expected.words} {expected.chars} {path}\n"
    )


def test_main_reads_stdin(monkeypatch, capsys):
    data = b"x y z\n"
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(data)))
    assert main([]) == 0
    expected = count(io.BytesIO(data))
    assert capsys.readouterr().out == (
        f"{expected.lines} {expected.words} {expected.chars} \n"
    )


def test_main_missing_file(tmp_path, capsys):
    missing = tmp_path / "absent"
    assert main([str(missing)]) == 1
    assert capsys.readouterr().out == f"wc: cannot open {missing}\n"