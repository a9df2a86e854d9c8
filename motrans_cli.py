#!/usr/bin/env python3

import argparse
import sys
from motranslib.core import utils
from motranslib.core.config import ConfigLoader
from motranslib.core.errors import MotionTransferError
from motranslib.core.pipeline import BASE
from motranslib.core.pipeline import MOTION
from motranslib.core.pipeline import OUTPUT
from motranslib.core.pipeline import TransferPipeline

#============================================

class OrderedStepAction(argparse.Action):
	"""Append (step, value) to one shared list so flag order is kept."""
	def __call__(self, parser, namespace, values, option_string=None):
		steps = getattr(namespace, self.dest, None)
		if steps is None:
			steps = []
		steps.append((self.const, values))
		setattr(namespace, self.dest, steps)

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(
		description="Transfer codec motion between two images onto a third")
	parser.add_argument('-m', '--motion', dest='steps', action=OrderedStepAction,
		const=MOTION, metavar='FILE',
		help='add a motion-source frame to the current motion batch')
	parser.add_argument('-i', '--input', dest='steps', action=OrderedStepAction,
		const=BASE, metavar='FILE',
		help='set the base image the motion is applied to')
	parser.add_argument('-o', '--output', dest='steps', action=OrderedStepAction,
		const=OUTPUT, metavar='FILE',
		help='write the base image with the accumulated motion applied')
	parser.add_argument('-c', '--config', dest='config_file',
		help='yaml file with codec settings')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='only print errors')
	parser.set_defaults(steps=None, quiet=False)
	args = parser.parse_args(argv)
	if not args.steps or OUTPUT not in [step for (step, _) in args.steps]:
		parser.error("at least one -o output file is required")
	return args

#============================================

def main(argv: list = None) -> None:
	args = parse_args(argv)
	utils.set_quiet_mode(args.quiet)
	try:
		config = ConfigLoader(args.config_file).load()
		pipeline = TransferPipeline(config)
		pipeline.run(args.steps)
	except MotionTransferError as exc:
		sys.stderr.write(f"motrans: {type(exc).__name__}: {exc}\n")
		sys.exit(1)


if __name__ == '__main__':
	main()
