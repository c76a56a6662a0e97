"""
Handlers attach services to the simulation's [EventLoop][bullysim.simulator.event.EventLoop]. They must be
injected with the loop before use.
"""
