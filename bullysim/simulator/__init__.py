"""
The simulator drives time for the election protocol. Protocol decisions are synchronous; only the delayed
re-election after a leader failure and the periodic failure detector are scheduled here, as named timers on a
discrete [EventLoop][bullysim.simulator.event.EventLoop].
"""
