import logging

from solwatch.utils import read_wallet_file

WALLET_A = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
WALLET_B = "JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB"


def test_reads_trimmed_non_empty_lines(tmp_path):
    path = tmp_path / "wallets.txt"
    path.write_text(f"  {WALLET_A}  \n\n\t\n{WALLET_B}\n")
    assert read_wallet_file(str(path)) == [WALLET_A, WALLET_B]


def test_keeps_file_order(tmp_path):
    path = tmp_path / "wallets.txt"
    path.write_text(f"{WALLET_B}\n{WALLET_A}")
    assert read_wallet_file(path) == [WALLET_B, WALLET_A]


def test_missing_file_returns_empty_list(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        assert read_wallet_file(tmp_path / "absent.txt") == []
    assert "Failed to read wallet file" in caplog.text


def test_blank_file_returns_empty_list_and_logs(tmp_path, caplog):
    path = tmp_path / "wallets.txt"
    path.write_text("\n   \n")
    with caplog.at_level(logging.ERROR):
        assert read_wallet_file(path) == []
    assert "empty" in caplog.text