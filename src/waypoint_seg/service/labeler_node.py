#!/usr/bin/env python3
"""
Semantic Segmentation Service Node

Labels integrated waypoint observations and republishes a growing semantic map.

How it works:
1. Loads the labeler configuration and the pre-trained supervoxel classifier
2. On a request, fetches the waypoint cloud and its sensor origin from the
   observation services
3. Supervoxelizes, classifies and smooths the cloud with a dense CRF
4. Answers with per-point labels and probabilities, then publishes the fusion
   of every waypoint labeled so far on a latched topic

Two services are offered: `~/label_integrated_cloud` (whole waypoint) and
`~/label_integrated_cloud_plus` (one instance within a waypoint). Each keeps its
own waypoint cache; both publish on the same topic.
"""

# ─── Standard Library Imports ────────────────────────────────────────────────────
import threading
from typing import Optional, Tuple

# ─── ROS2 Imports ────────────────────────────────────────────────────────────────
import rclpy
from rclpy.callback_groups import MutuallyExclusiveCallbackGroup, ReentrantCallbackGroup
from rclpy.executors import MultiThreadedExecutor
from rclpy.node import Node
from rclpy.qos import DurabilityPolicy, QoSProfile, ReliabilityPolicy
from sensor_msgs.msg import PointCloud2
from waypoint_seg_interfaces.srv import (
    LabelIntegratedPointCloud,
    LabelIntegratedPointInstanceCloud,
    ObservationInstanceService,
    ObservationService,
    SensorOriginService,
)

# ─── Local Imports ───────────────────────────────────────────────────────────────
from waypoint_seg.labeling import hyperparameters as H
from waypoint_seg.labeling.classifier import load_classifier
from waypoint_seg.labeling.cloud import ColoredCloud
from waypoint_seg.labeling.config import load_config
from waypoint_seg.labeling.errors import ConfigError, FetchError, ModelLoadError
from waypoint_seg.service.assembly import build_pipeline
from waypoint_seg.service.cloud_msgs import cloud_from_msg, cloud_to_msg, points_to_msgs
from waypoint_seg.service.map_publisher import LatchedCloudChannel, MapPublisher


class RosObservationSource:
    """Observation + sensor origin lookups through the map publisher's services."""

    def __init__(self, node: Node, observation_client, instance_client, origin_client, timeout: float):
        self.node = node
        self.observation_client = observation_client
        self.instance_client = instance_client
        self.origin_client = origin_client
        self.timeout = timeout

    def _call(self, client, request):
        if not client.wait_for_service(timeout_sec=self.timeout):
            raise FetchError(f"Service {client.srv_name} is not available")

        done = threading.Event()
        future = client.call_async(request)
        future.add_done_callback(lambda _: done.set())
        if not done.wait(self.timeout):
            client.remove_pending_request(future)
            raise FetchError(f"Service {client.srv_name} did not answer within {self.timeout}s")
        if future.exception() is not None:
            raise FetchError(f"Service {client.srv_name} failed: {future.exception()}")

        response = future.result()
        if response is None or not response.success:
            raise FetchError(f"Service {client.srv_name} reported failure")
        return response

    def fetch_cloud(self, location_key: str, instance_id: Optional[int],
                    resolution: float) -> Tuple[ColoredCloud, str]:
        if instance_id is None:
            client = self.observation_client
            request = ObservationService.Request()
        else:
            client = self.instance_client
            request = ObservationInstanceService.Request()
            request.instance_number = int(instance_id)
        request.waypoint_id = location_key
        request.resolution = float(resolution)

        response = self._call(client, request)
        try:
            cloud = cloud_from_msg(response.cloud)
        except (ValueError, AssertionError) as e:
            raise FetchError(f"Malformed cloud for '{location_key}': {e}") from e
        return cloud, response.cloud.header.frame_id

    def fetch_origin(self, location_key: str) -> Tuple[float, float, float]:
        request = SensorOriginService.Request()
        request.waypoint_id = location_key
        response = self._call(self.origin_client, request)
        return response.origin.x, response.origin.y, response.origin.z


def fill_response(result, response):
    response.success = bool(result.success)
    if not result.success:
        return response
    response.label = [int(l) for l in result.labels]
    response.label_probabilities = [float(p) for p in result.label_probabilities]
    response.label_frequencies = [float(f) for f in result.label_frequencies]
    response.points = points_to_msgs(result.points)
    response.index_to_label_name = list(result.class_names)
    return response


class SemanticLabelerNode(Node):
    """
    ROS2 node serving both labeling services.

    Raises ConfigError / ModelLoadError from the constructor; the node must
    not serve without a usable configuration and classifier.
    """

    def __init__(self):
        super().__init__('semantic_segmentation_service')
        self.get_logger().info('🚀 Initializing Semantic Segmentation Service...')

        # ─── Parameters ──────────────────────────────────────────────────────────
        self.declare_parameter('config_file', '')
        self.declare_parameter('model_path', '')
        self.declare_parameter('device', '')
        self.declare_parameter('observation_service', H.OBSERVATION_SERVICE)
        self.declare_parameter('observation_instance_service', H.OBSERVATION_INSTANCE_SERVICE)
        self.declare_parameter('sensor_origin_service', H.SENSOR_ORIGIN_SERVICE)
        self.declare_parameter('output_topic', H.OUTPUT_TOPIC)
        self.declare_parameter('service_timeout', H.SERVICE_TIMEOUT)

        config_file = self.get_parameter('config_file').get_parameter_value().string_value
        model_path = self.get_parameter('model_path').get_parameter_value().string_value
        device = self.get_parameter('device').get_parameter_value().string_value or None
        timeout = self.get_parameter('service_timeout').get_parameter_value().double_value

        # ─── Configuration & Model ───────────────────────────────────────────────
        self.config = load_config(config_file)
        self.class_set = self.config.class_set()
        self.get_logger().info(f'📋 {len(self.class_set)} classes: {", ".join(self.class_set.names)}')

        self.get_logger().info(f'📁 Using classifier: {model_path}')
        self.classifier = load_classifier(model_path, self.class_set, device)
        self.get_logger().info('🧠 Classifier ready')

        # ─── Callback Groups ─────────────────────────────────────────────────────
        # A labeling callback blocks its thread until the client replies arrive,
        # so replies run in their own group and each service holds at most one
        # thread (see executor_thread_count).
        self.client_group = ReentrantCallbackGroup()
        self.service_groups = {
            'label_integrated_cloud': MutuallyExclusiveCallbackGroup(),
            'label_integrated_cloud_plus': MutuallyExclusiveCallbackGroup(),
        }

        # ─── Latched Output ──────────────────────────────────────────────────────
        latched = QoSProfile(depth=1,
                             durability=DurabilityPolicy.TRANSIENT_LOCAL,
                             reliability=ReliabilityPolicy.RELIABLE)
        output_topic = self.get_parameter('output_topic').get_parameter_value().string_value
        self.cloud_pub = self.create_publisher(PointCloud2, output_topic, latched)
        self.channel = LatchedCloudChannel()
        self.channel.subscribe(self._emit_cloud)
        publisher = MapPublisher(self.channel)

        # ─── Observation Source ──────────────────────────────────────────────────
        def client(srv_type, param):
            name = self.get_parameter(param).get_parameter_value().string_value
            return self.create_client(srv_type, name, callback_group=self.client_group)

        source = RosObservationSource(
            self,
            client(ObservationService, 'observation_service'),
            client(ObservationInstanceService, 'observation_instance_service'),
            client(SensorOriginService, 'sensor_origin_service'),
            timeout,
        )

        # ─── Pipelines & Services ────────────────────────────────────────────────
        self.whole_pipeline = build_pipeline(self.config, self.classifier, source, publisher,
                                             name='label_integrated_cloud', logger=self.get_logger())
        self.instance_pipeline = build_pipeline(self.config, self.classifier, source, publisher,
                                                name='label_integrated_cloud_plus', logger=self.get_logger())

        self.create_service(LabelIntegratedPointCloud, '~/label_integrated_cloud',
                            self.label_cloud,
                            callback_group=self.service_groups['label_integrated_cloud'])
        self.create_service(LabelIntegratedPointInstanceCloud, '~/label_integrated_cloud_plus',
                            self.label_cloud_plus,
                            callback_group=self.service_groups['label_integrated_cloud_plus'])

        self.get_logger().info('✅ Semantic segmentation service ready')

    def _emit_cloud(self, cloud: ColoredCloud, frame_id: str):
        msg = cloud_to_msg(cloud, frame_id, self.get_clock().now().to_msg())
        self.cloud_pub.publish(msg)

    def label_cloud(self, request, response):
        result = self.whole_pipeline.label_cloud(request.waypoint_id)
        return fill_response(result, response)

    def label_cloud_plus(self, request, response):
        result = self.instance_pipeline.label_instance_cloud(request.waypoint_id, request.instance_number)
        return fill_response(result, response)


def executor_thread_count(node: SemanticLabelerNode, client_threads: int = H.CLIENT_THREADS) -> int:
    """One thread per labeling service that may block, plus threads for client replies."""
    return len(node.service_groups) + max(1, int(client_threads))


def main(args=None):
    rclpy.init(args=args)

    try:
        node = SemanticLabelerNode()
    except (ConfigError, ModelLoadError) as e:
        rclpy.logging.get_logger('semantic_segmentation_service').fatal(f'❌ {e}')
        rclpy.shutdown()
        return 1

    executor = MultiThreadedExecutor(num_threads=executor_thread_count(node))
    executor.add_node(node)
    try:
        executor.spin()
    except KeyboardInterrupt:
        node.get_logger().info('Shutting down semantic segmentation service')
    finally:
        node.destroy_node()
        if rclpy.ok():
            rclpy.shutdown()
    return 0


if __name__ == '__main__':
    main()
