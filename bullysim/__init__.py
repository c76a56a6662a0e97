"""
Bully leader-election simulator.

The package is split in two halves. The [election][bullysim.election] package holds the protocol: node records,
the election cascade and the failure/recovery controls. The [simulator][bullysim.simulator] package holds the
discrete event loop that drives timed behaviour such as delayed re-elections and the periodic failure detector.
"""
