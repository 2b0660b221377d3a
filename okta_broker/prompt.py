"""Operator interaction.

The pipeline never touches the terminal itself; everything it needs from a
human goes through an :class:`OperatorPrompt`. :class:`ConsolePrompt` is the
interactive implementation used by the command line. It writes to stderr so
stdout only carries credentials.
"""

import getpass
import sys


class OperatorPrompt:
    """Interface of the interactive collaborator."""

    def select_factor(self, factors):
        """Return exactly one of *factors*."""
        raise NotImplementedError

    def totp_code(self):
        raise NotImplementedError

    def password(self):
        raise NotImplementedError

    def confirm(self, question):
        raise NotImplementedError

    def info(self, message):
        raise NotImplementedError


class ConsolePrompt(OperatorPrompt):
    def __init__(self, stream=None):
        self.stream = stream or sys.stderr

    def _print(self, message="", end="\n"):
        print(message, end=end, file=self.stream, flush=True)

    def _input(self, label):
        self._print(label, end="")
        return input().strip()

    def select_factor(self, factors):
        self._print("\nAvailable MFA factors:")
        for i, factor in enumerate(factors):
            self._print(f"  [{i + 1}] {factor.human_name()}")

        while True:
            try:
                choice = int(self._input("\nSelect MFA factor: ")) - 1
                if 0 <= choice < len(factors):
                    return factors[choice]
            except ValueError:
                pass
            self._print("Invalid selection, please try again.")

    def totp_code(self):
        return self._input("Enter TOTP code: ")

    def password(self):
        return getpass.getpass("Password: ", stream=self.stream)

    def confirm(self, question):
        return self._input(f"{question} (y/n) ").lower() in ("y", "yes")

    def info(self, message):
        self._print(message)
