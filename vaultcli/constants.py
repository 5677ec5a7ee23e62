"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["ls", "mkdir", "rm", "mv", "upload", "download", "zip", "login", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#2E86C1 bold",
        "command": "#0088ff bold",
        "toolbar": "bg:#1B4F72 #FFFFFF",
    }
)

BLUE = "\033[38;2;46;134;193m"
GREEN = "\033[32m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
 ███████╗██╗██╗     ███████╗██╗   ██╗ █████╗ ██╗   ██╗██╗  ████████╗
 ██╔════╝██║██║     ██╔════╝██║   ██║██╔══██╗██║   ██║██║  ╚══██╔══╝
 █████╗  ██║██║     █████╗  ██║   ██║███████║██║   ██║██║     ██║
 ██╔══╝  ██║██║     ██╔══╝  ╚██╗ ██╔╝██╔══██║██║   ██║██║     ██║
 ██║     ██║███████╗███████╗ ╚████╔╝ ██║  ██║╚██████╔╝███████╗██║
 ╚═╝     ╚═╝╚══════╝╚══════╝  ╚═══╝  ╚═╝  ╚═╝ ╚═════╝ ╚══════╝╚═╝
{RESET}"""

WELCOME_TITLE = "FileVault CLI - Self-hosted file vault"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "vault> "

HELP_TEXT = """Available commands:
  ls [path]                              List a folder (default: root)
  mkdir <name> [path]                    Create folder <name> inside [path]
  rm <path>                              Delete a file or folder
  mv <path> <new-name>                   Rename a file or folder in place
  upload <file>... [--to <path>]         Upload local files in 5 MiB chunks
  download <remote-path> [--password <pw>]
                                         Download a file with 4 parallel range requests
  zip <path>...                          Download up to 50 files as one ZIP archive
  login <username> <password>            Check vault credentials
  clear                                  Clear screen and redisplay welcome message
  help                                   Show this help
  exit                                   Exit REPL

Sensitive files (.key .pem .pfx .p12 .doc .docx .pdf) need --password when the
vault has a password configured.
Examples:
  mkdir reports
  upload ./q3.csv ./q4.csv --to reports
  ls reports
  download reports/q3.csv
  mv reports/q4.csv q4-final.csv
  zip reports/q3.csv reports/q4-final.csv
  rm reports"""
