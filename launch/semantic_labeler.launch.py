# launch/semantic_labeler.launch.py
import os
from ament_index_python.packages import get_package_share_directory
from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument
from launch.conditions import IfCondition
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import Node


def generate_launch_description():
    default_config = os.path.join(
        get_package_share_directory('waypoint_seg'), 'config', 'labeler.yaml'
    )

    # allow overriding config, model and collaborator services at launch time
    config_arg = DeclareLaunchArgument(
        'config_file',
        default_value=default_config,
        description='Labeler YAML configuration'
    )
    model_arg = DeclareLaunchArgument(
        'model_path',
        default_value=os.path.expanduser('~/ros2_ws/src/waypoint_seg/checkpoints/classifier.pth'),
        description='Absolute path to the trained supervoxel classifier checkpoint'
    )
    observation_arg = DeclareLaunchArgument(
        'observation_service',
        default_value='/semantic_map_publisher/ObservationService',
        description='Service returning the integrated cloud of a waypoint'
    )
    instance_arg = DeclareLaunchArgument(
        'observation_instance_service',
        default_value='/semantic_map_publisher/ObservationInstanceService',
        description='Service returning one instance observation of a waypoint'
    )
    origin_arg = DeclareLaunchArgument(
        'sensor_origin_service',
        default_value='/semantic_map_publisher/SensorOriginService',
        description='Service returning the sensor origin of a waypoint'
    )
    logger_arg = DeclareLaunchArgument(
        'map_logger',
        default_value='false',
        description='Whether to start the map logger'
    )

    labeler_node = Node(
        package='waypoint_seg',
        executable='labeler_node',
        name='semantic_segmentation_service',
        output='screen',
        parameters=[{
            'config_file': LaunchConfiguration('config_file'),
            'model_path': LaunchConfiguration('model_path'),
            'observation_service': LaunchConfiguration('observation_service'),
            'observation_instance_service': LaunchConfiguration('observation_instance_service'),
            'sensor_origin_service': LaunchConfiguration('sensor_origin_service'),
        }]
    )

    map_logger = Node(
        package='waypoint_seg',
        executable='map_logger',
        name='semantic_map_logger',
        output='screen',
        condition=IfCondition(LaunchConfiguration('map_logger')),
        parameters=[{
            'topic': '/semantic_segmentation_clouds',
        }]
    )

    return LaunchDescription([
        config_arg,
        model_arg,
        observation_arg,
        instance_arg,
        origin_arg,
        logger_arg,
        labeler_node,
        map_logger,
    ])
