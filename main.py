from __future__ import annotations

import argparse
import logging

import uvicorn

from dama_ai.agents import create_minimax_controller, create_simple_minimax_controller
from dama_core.game import Game
from dama_core.pieces import Side
from dama_server.config import ServerSettings, setup_logging

logger = logging.getLogger("dama")


def parse_args(defaults: ServerSettings) -> argparse.Namespace:
	parser = argparse.ArgumentParser(description="Run the dama engine API server or a console self-play game.")
	parser.add_argument("--host", default=defaults.host, help="Bind host for the API server.")
	parser.add_argument("--port", type=int, default=defaults.port, help="Port for the API server.")
	parser.add_argument("--reload", action="store_true", help="Enable autoreload (development only).")
	parser.add_argument("--log-level", default=defaults.log_level, help="Log level for the app and uvicorn.")
	parser.add_argument("--self-play", action="store_true", help="Play one engine game in the console instead.")
	parser.add_argument("--depth", type=int, default=defaults.search.depth, help="Self-play search depth for Light.")
	parser.add_argument("--max-plies", type=int, default=200, help="Stop self-play after this many plies.")
	return parser.parse_args()


def self_play(defaults: ServerSettings, depth: int, max_plies: int) -> None:
	game = Game()
	light_settings = defaults.search.model_copy(update={"depth": max(1, depth)})
	game.setPlayer(Side.LIGHT, create_minimax_controller("Light", light_settings))
	game.setPlayer(Side.DARK, create_simple_minimax_controller("Dark", depth=2))

	while not game.state.terminal and len(game.move_history) < max_plies:
		controller = game.currentController()
		move = game.requestAIMove()
		if move is None:
			break
		logger.info("%s: %s", controller.name, move)

	print(game.board)
	if game.winner is not None:
		print(f"Game over! Winner: {game.winner.value}")
	else:
		print(f"No result after {len(game.move_history)} plies.")


def main() -> None:
	defaults = ServerSettings.from_env()
	args = parse_args(defaults)
	setup_logging(args.log_level)
	if args.self_play:
		self_play(defaults, args.depth, args.max_plies)
		return
	uvicorn.run(
		"dama_server.app:create_app",
		factory=True,
		host=args.host,
		port=args.port,
		reload=args.reload,
		log_level=args.log_level,
	)


if __name__ == "__main__":
	main()
