# This is an example file to watch the Bully election at work
# It creates a cluster of 5 nodes, keeps failing the coordinator until
# no node is left and then recovers everything so the failure detector
# elects a new coordinator


# Import the necessary general libraries
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bullysim.election import BullyConfig, LoggingEventSink, NoLeaderError, configure, default_leader, sequential_ids
from bullysim.simulator.simulation import SimulationConfiguration, Simulator


def main():

    # Simulation parameters
    debug = True # Simulation debug mode, installs the simulation log formatter
    real_time = False # Simulation real time mode
    simulator = Simulator(SimulationConfiguration(debug=debug, real_time=real_time))

    # Cluster parameters
    num_nodes = 5
    config = BullyConfig()
    config.set_random_seed(1)
    config.set_logging(enable=True, level="INFO")
    failure_config = config.get_failure_config()
    failure_config.set_reelection_delay(0.8) # seconds between a coordinator failure and the re-election
    failure_config.set_detection_interval(3) # seconds between failure detector checks

    ids = sequential_ids(num_nodes)
    cluster = configure(ids, default_leader(ids), config=config, simulator=simulator)
    cluster.subscribe(LoggingEventSink())
    cluster.start_failure_detection()

    # Fail the coordinator until the cluster is leaderless
    while True:
        try:
            cluster.fail_leader()
        except NoLeaderError:
            break
        simulator.run_for(1)

    # Bring everyone back, the failure detector notices the missing coordinator
    cluster.recover_all()
    simulator.run_for(4)

    for node in cluster.get_snapshot():
        print(node.to_dict())
    print(cluster.get_statistics())

    cluster.stop()


if __name__ == "__main__":
    main()
