# Interactive terminal front end for toolchat.
# Date: 2025-10-08
# Version: 0.2.0

import argparse
import asyncio
from typing import Optional

from toolchat.core.bootstrap import Runtime, build_runtime
from toolchat.core.config import Settings, get_settings
from toolchat.core.exceptions import ProviderError
from toolchat.core.token_cost import TokenCostCalculator
from toolchat.models.common import ChatResponse
from toolchat.models.tool_models import ToolFailure
from toolchat.services.reminder_checker import ReminderChecker
from toolchat.utils.logger import console

EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit"}
CLEAR_COMMANDS = {"/clear", "/clearhistory"}
TOOLS_COMMAND = "/tools"
REMINDER_COMMAND = "/reminder"


def announce_summarization(starting: bool):
    if starting:
        console.print("\n[yellow][Summarization][/yellow] Dialog history exceeds token threshold. Summarizing conversation...")
    else:
        console.print("[yellow][Summarization][/yellow] Summary complete. Continuing with summarized context.\n")


def print_reminder(content: str):
    console.print_markdown(content, title="Reminder Check")


class ChatCli:
    """Read-eval-print loop over one conversation."""

    def __init__(self, runtime: Runtime, settings: Settings):
        self.runtime = runtime
        self.settings = settings
        self.costs = TokenCostCalculator(settings)
        self.reminders = ReminderChecker(runtime.conversation, runtime.tool_service, settings, print_reminder)

    def print_welcome(self):
        console.rule("toolchat")
        console.print("Type 'exit' or 'quit' to leave at any time.")
        console.print("Type '/clear' to clear the conversation history.")
        console.print("Type '/tools' to list the available tools.")
        console.print("Type '/reminder' to toggle the periodic reminder check (off by default).")
        console.print(f"Model: {self.settings.MODEL}, temperature: {self.settings.TEMPERATURE}")

    async def read_input(self) -> Optional[str]:
        try:
            return (await asyncio.to_thread(console.input, "\n[bold]You:[/bold] ")).strip()
        except EOFError:
            console.print("\nEOF reached. Exiting...")
            return None

    async def run(self):
        self.print_welcome()
        try:
            while True:
                user_input = await self.read_input()
                if user_input is None or user_input.lower() in EXIT_COMMANDS:
                    break
                if not user_input:
                    console.print("Empty input. Please try again.")
                    continue

                command = user_input.lower()
                if command in CLEAR_COMMANDS:
                    await self.runtime.conversation.clear_history()
                    console.print("✓ Conversation history cleared.")
                elif command == TOOLS_COMMAND:
                    await self.show_tools()
                elif command == REMINDER_COMMAND:
                    self.toggle_reminders()
                elif not await self.handle_user_request(user_input):
                    console.rule("Dialog finished")
                    break
        finally:
            self.reminders.stop()
        console.print("Goodbye.")

    async def handle_user_request(self, user_input: str) -> bool:
        """Runs one turn; returns False when the model ended the dialog."""
        try:
            response = await self.runtime.conversation.send_request(user_input)
        except ProviderError as e:
            console.display_error_panel("Request failed", f"{e}\n\nTry again or type 'exit' to leave.")
            return True
        finally:
            if self.runtime.conversation.persist_failed:
                console.warning("The conversation history could not be saved; it will be lost on exit.")

        return self.show_response(response)

    def show_response(self, response: ChatResponse) -> bool:
        content = response.content
        dialog_end = self.settings.DIALOG_END_MARKER in content
        if dialog_end:
            content = content.replace(self.settings.DIALOG_END_MARKER, "").strip()

        console.print_markdown(content)
        if response.iteration_limit_reached:
            console.warning("The tool loop stopped at its round limit; the answer may be incomplete.")
        rows = self.costs.usage_rows(response.usage)
        if rows:
            console.display_data_as_table(rows, "Token Usage")
        return not dialog_end

    async def show_tools(self):
        if self.runtime.tool_service is None:
            console.print("No MCP servers configured. Set MCP_SERVER_URLS to enable tools.")
            return

        result = await self.runtime.tool_service.get_available_tools()
        if isinstance(result, ToolFailure):
            console.display_error_panel("Tool listing failed", str(result))
            return
        if not result.tools:
            console.print("The MCP servers returned no tools.")
            return
        console.display_data_as_table(
            [(tool.name, tool.description or "") for tool in result.tools],
            f"{len(result.tools)} tools available",
        )

    def toggle_reminders(self):
        if self.runtime.tool_service is None:
            console.print("Reminder checks are unavailable: no MCP servers configured.")
            return
        running = self.reminders.toggle()
        console.print(f"✓ Reminder check {'enabled' if running else 'disabled'}.")


async def run_cli(settings: Settings):
    runtime = await build_runtime(settings, on_summarization=announce_summarization)
    try:
        await ChatCli(runtime, settings).run()
    finally:
        await runtime.close()


def main():
    parser = argparse.ArgumentParser(prog="toolchat", description="Chat with a language model that can call MCP tools.")
    parser.add_argument("--model", help="Override the MODEL setting.")
    parser.add_argument("--temperature", type=float, help="Override the TEMPERATURE setting.")
    args = parser.parse_args()

    overrides = {}
    if args.model:
        overrides["MODEL"] = args.model
    if args.temperature is not None:
        overrides["TEMPERATURE"] = args.temperature
    settings = get_settings().model_copy(update=overrides) if overrides else get_settings()

    if not settings.LLM_API_KEY:
        console.display_error_panel(
            "Configuration error",
            "LLM_API_KEY is not configured. Set it in the environment or in a .env file.",
        )
        raise SystemExit(1)

    try:
        asyncio.run(run_cli(settings))
    except KeyboardInterrupt:
        console.print("\nInterrupted.")


if __name__ == "__main__":
    main()
