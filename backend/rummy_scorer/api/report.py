"""
XLSX export of a finished (or running) game.

Two sheets:
- Scores: round-by-round grid with totals, points left, packs and state
- Settlement: money per player plus the summary figures
"""
from __future__ import annotations

import io
from typing import Sequence, cast
from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from sqlalchemy.orm import Session as DBSession

from ..core.deps import get_db, get_game
from ..core.exceptions import RummyError
from ..models.db import Game
from ..models.entities import GameSnapshot, PlayerState
from ..services import scoring
from ..services.game_service import GameService
from ..services.settlement import PlayerSettlement, format_currency, settle_snapshot, settlement_summary
from .settlement import stored_settlements

router = APIRouter(prefix="/api/games", tags=["report"])


HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
MONEY_POSITIVE_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
MONEY_NEGATIVE_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
OUT_FILL = PatternFill(start_color="D9D9D9", end_color="D9D9D9", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


def _style_header(ws, row: int, cols: int):
    for col in range(1, cols + 1):
        cell = ws.cell(row=row, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = THIN_BORDER


def _auto_width(ws):
    for column_cells in ws.columns:
        longest = max((len(str(c.value)) for c in column_cells if c.value is not None), default=0)
        ws.column_dimensions[column_cells[0].column_letter].width = max(min(longest + 4, 60), 12)


def _create_scores_sheet(wb: Workbook, game: Game, snapshot: GameSnapshot):
    ws = wb.active
    ws.title = "Scores"

    ws.cell(row=1, column=1, value=cast(str, game.name))
    ws.cell(row=1, column=1).font = Font(bold=True, size=14)
    ws.cell(row=2, column=1, value=f"For {snapshot.config.for_points} points, pack {snapshot.config.pack_points}")

    metrics = scoring.all_player_metrics(snapshot)
    if not metrics:
        ws.cell(row=4, column=1, value="No players")
        ws.cell(row=4, column=1).font = Font(italic=True)
        return

    row = 4
    headers = ["Round"] + [m.name for m in metrics]
    for col, h in enumerate(headers, 1):
        ws.cell(row=row, column=col, value=h)
    _style_header(ws, row, len(headers))
    row += 1

    for round_number, entries in scoring.round_breakdown(snapshot):
        ws.cell(row=row, column=1, value=round_number)
        for col, m in enumerate(metrics, 2):
            if m.player_id in entries:
                ws.cell(row=row, column=col, value=entries[m.player_id])
        row += 1

    summary_rows = [
        ("Total", lambda m: m.total_score),
        ("Points left", lambda m: m.points_left),
        ("Packs", lambda m: m.packs_remaining),
        ("Residual", lambda m: m.residual_points),
        ("State", lambda m: m.state.value),
    ]
    for label, value in summary_rows:
        ws.cell(row=row, column=1, value=label)
        ws.cell(row=row, column=1).font = Font(bold=True)
        for col, m in enumerate(metrics, 2):
            cell = ws.cell(row=row, column=col, value=value(m))
            if m.state == PlayerState.OUT:
                cell.fill = OUT_FILL
        row += 1

    _auto_width(ws)


def _create_settlement_sheet(wb: Workbook, settlements: Sequence[PlayerSettlement], currency: str):
    ws = wb.create_sheet(title="Settlement")

    if not settlements:
        ws.cell(row=1, column=1, value="Settlement not available yet")
        ws.cell(row=1, column=1).font = Font(italic=True)
        return

    headers = ["Player", "Final score", "Points left", "Packs", "Residual", "Amount", "Winner"]
    for col, h in enumerate(headers, 1):
        ws.cell(row=1, column=col, value=h)
    _style_header(ws, 1, len(headers))

    row = 2
    for s in settlements:
        ws.cell(row=row, column=1, value=s.player_name)
        ws.cell(row=row, column=2, value=s.final_score)
        ws.cell(row=row, column=3, value=s.points_left)
        ws.cell(row=row, column=4, value=s.packs_remaining)
        ws.cell(row=row, column=5, value=s.residual_points)
        cell = ws.cell(row=row, column=6, value=round(s.settlement_amount, 2))
        if s.settlement_amount > 0:
            cell.fill = MONEY_POSITIVE_FILL
        elif s.settlement_amount < 0:
            cell.fill = MONEY_NEGATIVE_FILL
        ws.cell(row=row, column=7, value="yes" if s.is_winner else "")
        row += 1

    summary = settlement_summary(settlements)
    row += 1
    for label, value in (
        ("Winner", summary.winner),
        ("Total money", format_currency(summary.total_money, currency)),
        ("Biggest loss", format_currency(-summary.max_loss, currency)),
        ("Biggest gain", format_currency(summary.max_gain, currency)),
        ("Players", summary.player_count),
    ):
        ws.cell(row=row, column=1, value=label)
        ws.cell(row=row, column=1).font = Font(bold=True)
        ws.cell(row=row, column=2, value=value)
        row += 1

    _auto_width(ws)


@router.get("/{game_id}/report.xlsx")
def export_report(game: Game = Depends(get_game), db: DBSession = Depends(get_db)):
    snapshot = GameService.build_snapshot(db, game)

    settlements = stored_settlements(db, game)
    if not settlements:
        try:
            settlements = settle_snapshot(snapshot)
        except RummyError:
            settlements = []

    wb = Workbook()
    _create_scores_sheet(wb, game, snapshot)
    _create_settlement_sheet(wb, settlements, snapshot.config.currency)

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)

    filename = f"rummy_game_{game.id}.xlsx"
    headers = {
        "Content-Disposition": (
            f'attachment; filename="{filename}"; '
            f"filename*=UTF-8''{quote(filename)}"
        )
    }
    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )
