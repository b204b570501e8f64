"""Reply templates.

Templates use %-style placeholders and are filled in by the command
handlers. Help strings are wrapped by MSG_HELP_QUERY when a command is
called with the wrong arguments.
"""

MSG_VERSION = "I'm CocBot v7.0.0, written in Python!"

MSG_RESIST_THINK = "Let's see...\nActive: **%d**\nPassive: **%d**\n"
MSG_RESIST_AUTO_PASS = "The result is an **Automatic Success**!! \\(^o^)/"
MSG_RESIST_AUTO_FAIL = "The result is an **Automatic Failure**!! (´・ω・`)"
MSG_RESIST_NORMAL = "The result is **%d ** !! （｀・ω・´）"

MSG_ADD_ALIAS_TARGET_NOT_FOUND = "Target not found! Are you sure the target name is correct?"
MSG_ADD_ALIAS_PASS = "Alias added! **%s** is now also known as **%s**!"
MSG_ADD_ALIAS_DUPLICATE_FOUND = (
    "Duplicate alias **%s** found! Please remove first with the *alias remove* command"
)

MSG_GET_ALIAS_PASS = "**%s** is also known as **%s**!"
MSG_GET_ALIAS_FAIL = "Sorry, I can't find an alias for **%s**..."

MSG_REMOVE_ALIAS_PASS = "Done! **%s** is not longer an alias! ^^b"
MSG_REMOVE_ALIAS_FAIL = "Sorry, I can't find an alias named **%s**..."

MSG_FIND_PASS_WITH_ALIAS = "I found **%s** (aka **%s**)! ```%s```"
MSG_FIND_PASS = "I found **%s**! ```%s```"
MSG_FIND_FAIL = "Sorry...I can't find what you are looking for >_<"

MSG_HELP_QUERY = "Did you do it correctly? ```%s```"

MSG_HELP_ADD_ALIAS = (
    "add-alias: Adds an alias to a 'find'\n"
    "\t> Usage: !coc add-alias <alias_name> = <target_name>\n"
    "\t(if success, you can then do '!coc, find <alias_name>')"
)
MSG_HELP_REMOVE_ALIAS = "remove-alias: Removes an alias\n\t> Usage: !coc remove-alias <alias_name>"
MSG_HELP_GET_ALIAS = "get-alias: Displays an alias\n\t> Usage: !coc get-alias <alias_name>"
MSG_HELP_RESIST = "resist: Check CoC resistance!\n\t> Usage: !coc resist <active> vs <passive>"
MSG_HELP_FIND = "find: Use this command to find something\n\t> Usage: !coc find <something>"

MSG_HELP = "\n".join([
    "```",
    MSG_HELP_RESIST,
    MSG_HELP_FIND,
    MSG_HELP_GET_ALIAS,
    MSG_HELP_ADD_ALIAS,
    MSG_HELP_REMOVE_ALIAS,
    "```",
])

MSG_GENERIC_FAIL = "Sorry, something went wrong...contact Momo? (´・ω・`)"


def usage(help_text: str) -> str:
    """Wrap a command's help string in the 'did you do it correctly' reply."""
    return MSG_HELP_QUERY % help_text
