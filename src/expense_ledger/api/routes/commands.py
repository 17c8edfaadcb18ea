"""Text command endpoints."""

from fastapi import APIRouter

from expense_ledger.core.deps import Interpreter
from expense_ledger.core.exceptions import RecognitionFailedError
from expense_ledger.schemas.command import CommandOutcome, CommandRequest, ParsedCommand
from expense_ledger.services.command_interpreter import GUIDANCE
from expense_ledger.services.command_parser import parse_command

router = APIRouter()


@router.post("/", response_model=CommandOutcome)
async def run_command(request: CommandRequest, interpreter: Interpreter):
    """
    Interpret a text command.

    Returns one outcome, told apart by ``kind``:
    - ``committed``: the record was written
    - ``disambiguation``: some names did not match existing ones
    - ``unrecognized``: no command format matched; ``message`` explains the formats
    - ``rejected``: the ledger refused the command; ``reason`` says why
    """
    return await interpreter.interpret(request.text)


@router.post("/parse", response_model=ParsedCommand)
async def parse(request: CommandRequest, interpreter: Interpreter):
    """
    Parse a text command without writing anything.

    Raises:
        RecognitionFailedError: If no command format matches
    """
    command = parse_command(request.text, interpreter.today())
    if command is None:
        raise RecognitionFailedError(GUIDANCE.format(text=request.text))
    return command
