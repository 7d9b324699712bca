"""Tests for chatkarma.users."""

from chatkarma.users import UserDirectory


class TestUserDirectory:
    def test_display_name(self, users):
        assert users.display_name("1") == "Test User"

    def test_unknown_user_is_its_id(self, users):
        assert users.display_name("U999") == "U999"

    def test_without_file(self):
        directory = UserDirectory()
        directory.add_user("1", "Nobody Saved")
        assert directory.display_name("1") == "Nobody Saved"

    def test_persists(self, users, config):
        reloaded = UserDirectory(config.users_path)
        assert reloaded.display_name("2") == "Other User"

    def test_numeric_ids_from_yaml(self, tmp_path):
        path = tmp_path / "users.yaml"
        path.write_text("users:\n  42:\n    name: Numeric\n", encoding="utf-8")
        assert UserDirectory(path).display_name("42") == "Numeric"

    def test_rename(self, users, config):
        users.add_user("1", "Renamed")
        assert users.display_name("1") == "Renamed"
        assert UserDirectory(config.users_path).display_name("1") == "Renamed"

