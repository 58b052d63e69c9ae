"""設定モデルとローダーのユニットテスト"""

from pathlib import Path

import pytest
from k1s0_session_auth.adapter import InMemoryAdapter
from k1s0_session_auth.config import SessionAuthConfig, load
from k1s0_session_auth.exceptions import SessionAuthError, SessionAuthErrorCodes
from k1s0_session_auth.manager import SessionManager
from k1s0_session_auth.models import DatabaseUser

from conftest import FakeClock

SECRET = "k1s0-session-auth-test-secret-0123456789"


def test_defaults() -> None:
    """空の設定でもデフォルト値が入ること。"""
    config = SessionAuthConfig()
    assert config.session.expires_in_seconds == 30 * 24 * 60 * 60
    assert config.cookie.name == "auth_session"
    assert config.cookie.expires is True
    assert config.jwt.enabled is False


def test_load_minimal_config(tmp_path: Path) -> None:
    """最小設定ファイルの読み込み。"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("session:\n  expires_in_seconds: 3600\n")
    config = load(config_file)
    assert config.session.expires_in_seconds == 3600


def test_load_empty_file(tmp_path: Path) -> None:
    """空ファイルはデフォルト設定になること。"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")
    assert load(config_file) == SessionAuthConfig()


def test_load_with_env_override(tmp_path: Path) -> None:
    """環境別設定のマージ確認。"""
    base_file = tmp_path / "base.yaml"
    base_file.write_text("cookie:\n  name: sid\n  attributes:\n    secure: true\n")
    env_file = tmp_path / "dev.yaml"
    env_file.write_text("cookie:\n  attributes:\n    secure: false\n")
    config = load(base_file, env_file)
    assert config.cookie.name == "sid"
    assert config.cookie.attributes.secure is False


def test_load_env_not_exists(tmp_path: Path) -> None:
    """env_path が存在しない場合は base のみ使用。"""
    base_file = tmp_path / "base.yaml"
    base_file.write_text("cookie:\n  name: fallback\n")
    config = load(base_file, tmp_path / "nonexistent.yaml")
    assert config.cookie.name == "fallback"


def test_load_file_not_found(tmp_path: Path) -> None:
    """存在しないファイルで READ_FILE_ERROR が発生すること。"""
    with pytest.raises(SessionAuthError) as exc_info:
        load(tmp_path / "missing.yaml")
    assert exc_info.value.code == SessionAuthErrorCodes.READ_FILE
    assert isinstance(exc_info.value.__cause__, OSError)


def test_load_invalid_yaml(tmp_path: Path) -> None:
    """不正 YAML で PARSE_YAML_ERROR が発生すること。"""
    bad_file = tmp_path / "bad.yaml"
    bad_file.write_text("session: {invalid: yaml: content:\n")
    with pytest.raises(SessionAuthError) as exc_info:
        load(bad_file)
    assert exc_info.value.code == SessionAuthErrorCodes.PARSE_YAML


@pytest.mark.parametrize(
    "content",
    [
        "session:\n  expires_in_seconds: 0\n",
        "cookie:\n  attributes:\n    same_site: sometimes\n",
        "jwt:\n  verify:\n    leeway_seconds: -1\n",
    ],
)
def test_load_validation_error(tmp_path: Path, content: str) -> None:
    """バリデーション失敗で VALIDATION_ERROR が発生すること。"""
    bad_config = tmp_path / "bad_config.yaml"
    bad_config.write_text(content)
    with pytest.raises(SessionAuthError) as exc_info:
        load(bad_config)
    assert exc_info.value.code == SessionAuthErrorCodes.VALIDATION


def test_env_layer_replaces_lists(tmp_path: Path) -> None:
    """環境別ファイルのリストはマージされず置換されること。"""
    base_file = tmp_path / "base.yaml"
    base_file.write_text("jwt:\n  verify:\n    algorithms: [HS256]\n    issuer: k1s0\n")
    env_file = tmp_path / "prod.yaml"
    env_file.write_text("jwt:\n  verify:\n    algorithms: [RS256]\n")
    config = load(base_file, env_file)
    assert config.jwt.verify is not None
    assert config.jwt.verify.algorithms == ["RS256"]
    assert config.jwt.verify.issuer == "k1s0"


def test_load_non_mapping_root(tmp_path: Path) -> None:
    """ルートがマッピングでない YAML は VALIDATION_ERROR。"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("- just\n- a list\n")
    with pytest.raises(SessionAuthError) as exc_info:
        load(config_file)
    assert exc_info.value.code == SessionAuthErrorCodes.VALIDATION


def test_load_with_secrets(tmp_path: Path) -> None:
    """secrets が最後のレイヤーとして重ねられること。"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("jwt:\n  enabled: true\n  secret: from-file\n")
    config = load(config_file, secrets={"jwt.secret": SECRET, "jwt.sign.issuer": "k1s0"})
    assert config.jwt.enabled is True
    assert config.jwt.secret == SECRET
    assert config.jwt.sign is not None
    assert config.jwt.sign.issuer == "k1s0"


def test_load_secrets_are_validated(tmp_path: Path) -> None:
    """secrets で与えた値も検証されること。"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")
    with pytest.raises(SessionAuthError) as exc_info:
        load(config_file, secrets={"session.expires_in_seconds": "never"})
    assert exc_info.value.code == SessionAuthErrorCodes.VALIDATION


def test_jwt_section_to_options() -> None:
    """JWT 設定がオプションに変換されること。"""
    config = SessionAuthConfig.model_validate(
        {
            "jwt": {
                "enabled": True,
                "secret": SECRET,
                "sign": {"algorithm": "HS512", "expires_in_seconds": 900, "issuer": "k1s0"},
                "verify": {"issuer": "k1s0", "leeway_seconds": 5},
            }
        }
    )
    options = config.jwt.to_options()
    assert options.sign_options is not None
    assert options.sign_options.algorithm == "HS512"
    assert options.sign_options.expires_in == 900
    assert options.verify_options is not None
    assert options.verify_options.algorithms is None
    assert options.verify_options.leeway == 5


async def test_manager_from_config(tmp_path: Path, clock: FakeClock) -> None:
    """設定ファイルから構築した SessionManager が動作すること。"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "session:\n"
        "  expires_in_seconds: 600\n"
        "cookie:\n"
        "  name: k1s0_session\n"
        "  attributes:\n"
        "    same_site: strict\n"
        "jwt:\n"
        "  enabled: true\n"
        "  sign:\n"
        "    expires_in_seconds: 60\n"
    )
    config = load(config_file, secrets={"jwt.secret": SECRET})
    adapter = InMemoryAdapter(clock=clock)
    adapter.add_user(DatabaseUser(id="user-1"))
    manager: SessionManager = SessionManager.from_config(config, adapter, clock=clock)

    session = await manager.create_session("user-1", {})
    assert (session.expires_at - clock.now).total_seconds() == 600
    cookie = manager.create_session_cookie(session.id)
    assert cookie.name == "k1s0_session"
    assert cookie.attributes.same_site == "strict"
    assert cookie.attributes.max_age == 600
    assert manager.create_token({"user_id": "user-1"}).status is True


def test_manager_from_config_without_secret() -> None:
    """シークレット未設定なら JWT は無効扱いになること。"""
    config = SessionAuthConfig.model_validate({"jwt": {"enabled": True, "sign": {}}})
    manager: SessionManager = SessionManager.from_config(config)
    assert manager.create_token({"user_id": "user-1"}).status is False
