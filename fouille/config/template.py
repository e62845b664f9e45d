"""Default configuration template.

This template is written to ~/.config/fouille/config.toml
when running `fouille config init`.
"""

CONFIG_TEMPLATE = """\
# Fouille Configuration

[search]
# Blended score = full-text score * lexical_weight
#               + semantic score * semantic_weight
semantic_enabled = true
lexical_weight = 0.6
semantic_weight = 0.4
# Hits scoring below this are not shown
min_score = 0.3
default_limit = 50

# Add your Maildir accounts below. Each mail_dir must be inside the
# notmuch mail root (see `notmuch config get database.mail_root`).
#
# [accounts.personal]
# mail_dir = "~/Mail/Personal"
#
# [accounts.work]
# mail_dir = "~/Mail/Work"
#
# After adding mail, index it with:
#   fouille reindex --account personal
"""
