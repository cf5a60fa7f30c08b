"""
Shared pytest fixtures for the MySQL → SQLite translator tests.
"""

import json
import sys
from pathlib import Path

import pytest

# ── Ensure translator modules importable ────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "translator"))


# ── Temporary directory ─────────────────────────────────────────────────────

@pytest.fixture
def tmp_output(tmp_path):
    """Provide a temporary output directory."""
    return tmp_path


# ── Configuration ───────────────────────────────────────────────────────────

@pytest.fixture
def config():
    from translator_config import load_config
    return load_config()


@pytest.fixture
def config_file(tmp_path):
    """Write a JSON override file and return its path."""
    def _write(overrides):
        path = tmp_path / "translator.json"
        path.write_text(json.dumps(overrides), encoding="utf-8")
        return str(path)
    return _write


# ── Translator instances ────────────────────────────────────────────────────

@pytest.fixture
def translator():
    from sqlite_translator import SQLiteTranslator
    return SQLiteTranslator()


@pytest.fixture
def ddl(config):
    from ddl_translator import DDLTranslator
    return DDLTranslator(config)


@pytest.fixture
def dml(config):
    from dml_translator import DMLTranslator
    return DMLTranslator(config)


@pytest.fixture
def translate_ddl(ddl):
    """Tokenize, classify and run a statement through the DDL translator."""
    from sql_lexer import tokenize
    from statement_classifier import classify

    def _translate(sql):
        tokens = tokenize(sql)
        return ddl.translate(classify(tokens, sql), tokens, sql)
    return _translate


# ── Schemas ─────────────────────────────────────────────────────────────────

WP_SCHEMA = """
-- Core tables
CREATE TABLE wp_users (
    ID bigint(20) unsigned NOT NULL auto_increment,
    user_login varchar(60) NOT NULL default '',
    user_pass varchar(255) NOT NULL default '',
    user_email varchar(100) NOT NULL default '',
    user_registered datetime NOT NULL default '0000-00-00 00:00:00',
    user_status int(11) NOT NULL default '0',
    display_name varchar(250) NOT NULL default '',
    PRIMARY KEY  (ID),
    KEY user_login_key (user_login),
    KEY user_email (user_email)
) DEFAULT CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_520_ci;

CREATE TABLE wp_posts (
    ID bigint(20) unsigned NOT NULL auto_increment,
    post_author bigint(20) unsigned NOT NULL default '0',
    post_date datetime NOT NULL default '0000-00-00 00:00:00',
    post_content longtext NOT NULL,
    post_title text NOT NULL,
    post_status varchar(20) NOT NULL default 'publish',
    post_name varchar(200) NOT NULL default '',
    post_parent bigint(20) unsigned NOT NULL default '0',
    post_type varchar(20) NOT NULL default 'post',
    comment_count bigint(20) NOT NULL default '0',
    PRIMARY KEY  (ID),
    KEY post_name (post_name(191)),
    KEY type_status_date (post_type,post_status,post_date,ID),
    KEY post_parent (post_parent),
    KEY post_author (post_author)
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;

CREATE TABLE wp_options (
    option_id bigint(20) unsigned NOT NULL auto_increment,
    option_name varchar(191) NOT NULL default '',
    option_value longtext NOT NULL,
    autoload varchar(20) NOT NULL default 'yes',
    PRIMARY KEY  (option_id),
    UNIQUE KEY option_name (option_name),
    KEY autoload (autoload)
);

CREATE TABLE wp_term_relationships (
    object_id bigint(20) unsigned NOT NULL default 0,
    term_taxonomy_id bigint(20) unsigned NOT NULL default 0,
    term_order int(11) NOT NULL default 0,
    PRIMARY KEY  (object_id,term_taxonomy_id),
    KEY term_taxonomy_id (term_taxonomy_id)
);
"""


@pytest.fixture
def wp_schema():
    """A WordPress-style MySQL schema batch."""
    return WP_SCHEMA
