"""
CNN architecture for blow / not-blow classification
Three convolution stages over the (time, mel) plane feeding a small dense head
"""

import logging

import tensorflow as tf

from blow_classifier.config import MODEL_INPUT_SHAPE, NUM_CLASSES, LEARNING_RATE
from blow_classifier.model.layers import conv_block, classifier_head

logger = logging.getLogger(__name__)


def build_blow_cnn(input_shape=MODEL_INPUT_SHAPE, num_classes=NUM_CLASSES,
                   learning_rate=LEARNING_RATE):
    """
    Build and compile the fixed topology:

        Conv(32) -> MaxPool -> Conv(64) -> MaxPool -> Conv(128)
        -> GlobalAveragePool -> Dropout(0.5) -> Dense(64) -> Dropout(0.3)
        -> Dense(num_classes, softmax)

    Trained with categorical cross-entropy and Adam.
    """
    logger.info("Building blow classifier CNN...")

    inputs = tf.keras.Input(shape=input_shape, name='log_mel_input')

    x = conv_block(inputs, 32)
    x = conv_block(x, 64)
    x = conv_block(x, 128, pool=False)

    outputs = classifier_head(x, num_classes)

    model = tf.keras.Model(inputs=inputs, outputs=outputs, name='blow_classifier_cnn')

    model.compile(
        optimizer=tf.keras.optimizers.Adam(learning_rate=learning_rate),
        loss='categorical_crossentropy',
        metrics=['accuracy']
    )

    logger.info(f"Model built with {model.count_params()} parameters")

    return model
